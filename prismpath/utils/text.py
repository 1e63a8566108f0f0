import re
import time
from typing import List, Optional

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)]|[a-zA-Z][.)])\s+")
_PREAMBLE = re.compile(r"^(Here are|Sure|Here's|As an expert).*?:", re.IGNORECASE | re.MULTILINE)


def format_ai_response(text: str) -> str:
    """Strip markdown emphasis and chatty preambles from model output."""
    if not text:
        return ""
    clean = text.replace("**", "").replace("*", "").replace("#", "")
    clean = re.sub(r"\.([A-Z])", r". \1", clean)
    clean = _PREAMBLE.sub("", clean)
    return clean.strip()


def split_list_lines(text: str) -> List[str]:
    """
    Pull list items out of free text.

    Numbered ("1.", "2)") and bulleted ("-", "*", "•") lines are returned with
    their markers removed. When the text has no list markers at all, every
    non-empty line is returned instead.
    """
    if not text:
        return []

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    items = [_LIST_MARKER.sub("", line).strip() for line in lines if _LIST_MARKER.match(line)]
    items = [i for i in items if i]
    return items if items else lines


def generate_strategy_id(strategy_text: str) -> Optional[str]:
    """Normalise accommodation strategy text into a stable, URL-friendly id."""
    if not strategy_text:
        return None
    normalized = strategy_text.lower().strip()
    normalized = re.sub(r"[^\w\s-]", "", normalized)
    normalized = re.sub(r"\s+", "-", normalized)
    normalized = re.sub(r"-+", "-", normalized)[:100]
    return normalized or f"strategy-{int(time.time() * 1000)}"
