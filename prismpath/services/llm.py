"""
Gemini access for the drafting tools.

Each tool is a "mode": a system prompt plus a preferred model. Pro-model
modes fall back to the flash model when the pro call fails, except on rate
limiting, which ends the attempt immediately.
"""
import base64
import json
import logging
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from prismpath.config import get_settings, is_configured
from prismpath.utils.text import format_ai_response

logger = logging.getLogger(__name__)

FLASH_MODEL = "gemini-1.5-flash"
PRO_MODEL = "gemini-1.5-pro"
LEGACY_MODELS = ["gemini-2.0-flash", "gemini-1.5-flash"]

SYSTEM_PROMPT_SEPARATOR = "\n\n---\n\n"
MAX_FILE_TEXT = 5000

AI_MODES: Dict[str, Dict[str, str]] = {
    "neuro_driver": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "You are an executive function coach. Output ONLY a numbered list of actionable steps. "
            "Max 10 words per step. If the user asks for homework help or roleplay, REFUSE."
        ),
    },
    "accommodation_gem": {
        "model": PRO_MODEL,
        "system_prompt": "Expert curriculum differentiator. Analyze input/PDF and provide modifications.",
    },
    "iep_builder": {
        "model": PRO_MODEL,
        "system_prompt": "Special Ed Case Manager. Write formal goals and professional emails.",
    },
    "instant_help": {
        "model": FLASH_MODEL,
        "system_prompt": "Inclusion Specialist. Provide 3 bullet points of immediate accommodation strategies.",
    },
    "translator": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "You are a professional translator. Translate the provided text accurately while keeping "
            "the tone, formality and structure of the original, including greetings and sign-offs. "
            "Return ONLY the translated text, no explanations, no markdown."
        ),
    },
    "data_extractor": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "You are a data extraction assistant. Extract structured JSON data from unstructured text. "
            "Return ONLY valid JSON in the requested format. If a field cannot be determined, use null."
        ),
    },
    "tone": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "You are a professional communication coach. Analyze the provided text for hostility, "
            "frustration, or non-objective language. Return ONLY a valid JSON object with this exact "
            'structure: {"score": <number 1-10 where 1=safe, 10=very risky>, "flagged_phrases": '
            '[<problematic phrases>], "better_alternatives": [<suggested improvements>]}. '
            "Only flag truly problematic language."
        ),
    },
    "plaafp": {
        "model": PRO_MODEL,
        "system_prompt": (
            "Special Education Case Manager. Write a Present Levels of Academic Achievement and "
            "Functional Performance (PLAAFP) statement: strengths, needs, and the impact of the "
            "disability on access to the general curriculum. Objective, professional, third person."
        ),
    },
    "goal": {
        "model": PRO_MODEL,
        "system_prompt": (
            "Special Education Case Manager. Write one measurable IEP goal with condition, behavior, "
            "criterion and timeframe, followed by 2-3 short-term objectives."
        ),
    },
    "email": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "You write warm, professional emails from teachers to families. Plain language, no jargon, "
            "under 200 words."
        ),
    },
    "behavior": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "Behavior specialist. Given an ABC (antecedent, behavior, consequence) log, identify the "
            "likely function of the behavior and suggest 3 proactive strategies."
        ),
    },
    "slicer": {
        "model": FLASH_MODEL,
        "system_prompt": (
            "You break assignments into small, concrete steps for students with executive function "
            "needs. Output ONLY a numbered list. Each step under 12 words with a time estimate."
        ),
    },
}

_EMAIL = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
_SSN = re.compile(r"\b\d{3}-\d{2}-\d{4}\b")
_PHONE = re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b")
_ADDRESS = re.compile(
    r"\d+\s+[\w\s]+?(?:street|st|avenue|ave|road|rd|drive|dr|lane|ln|way|blvd|boulevard)\b",
    re.IGNORECASE,
)


class AIRateLimitError(RuntimeError):
    pass


def anonymize(prompt: str, student_name: Optional[str] = None) -> str:
    """Remove the student's name and common PII patterns before text leaves the server."""
    if not prompt:
        return ""

    text = prompt
    if student_name and student_name.strip():
        text = re.sub(rf"\b{re.escape(student_name.strip())}\b", "[Student]", text, flags=re.IGNORECASE)

    text = _EMAIL.sub("[email]", text)
    text = _SSN.sub("[ssn]", text)
    text = _PHONE.sub("[phone]", text)
    text = _ADDRESS.sub("[address]", text)
    return text


@lru_cache(maxsize=1)
def get_client() -> genai.Client:
    api_key = get_settings().gemini_api_key
    if not is_configured(api_key):
        raise RuntimeError("Server Error: API Key is missing")
    return genai.Client(api_key=api_key)


def _is_rate_limited(error: Exception) -> bool:
    if getattr(error, "code", None) == 429:
        return True
    message = str(error)
    return "429" in message or "RESOURCE_EXHAUSTED" in message


def build_parts(user_prompt: str, files: Optional[List[Dict[str, Any]]] = None) -> List[types.Part]:
    parts = []
    if user_prompt and user_prompt.strip():
        parts.append(types.Part.from_text(text=user_prompt))

    for file in files or []:
        name = file.get("name") or "document"
        if file.get("type") == "image" and file.get("data"):
            data = file["data"]
            mime_type = "image/jpeg"
            if data.startswith("data:"):
                header, data = data.split(",", 1)
                match = re.match(r"data:([^;]+)", header)
                if match:
                    mime_type = match.group(1)
            parts.append(types.Part.from_bytes(data=base64.b64decode(data), mime_type=mime_type))
        elif file.get("content"):
            label = "PDF Document" if file.get("type") == "pdf" else "Document"
            parts.append(types.Part.from_text(text=f'\n\n{label} "{name}":\n{file["content"][:MAX_FILE_TEXT]}'))

    return parts


def call_gemini(
    model: str,
    system_prompt: Optional[str],
    user_prompt: str,
    files: Optional[List[Dict[str, Any]]] = None,
) -> str:
    config = types.GenerateContentConfig(system_instruction=system_prompt) if system_prompt else None
    try:
        response = get_client().models.generate_content(
            model=model,
            contents=build_parts(user_prompt, files),
            config=config,
        )
    except Exception as e:
        if _is_rate_limited(e):
            raise AIRateLimitError("Rate Limit: Please try again in 30 seconds")
        raise RuntimeError(f"AI Service Error: {str(e)}")

    text = (response.text or "").strip()
    if not text:
        raise RuntimeError("No response from AI model")
    return text


def _with_fallback(models: List[str], system_prompt: Optional[str], user_prompt: str, files) -> str:
    last_error: Optional[Exception] = None
    for model in models:
        try:
            return call_gemini(model, system_prompt, user_prompt, files)
        except AIRateLimitError:
            raise
        except RuntimeError as e:
            logger.warning(f"Gemini model {model} failed: {str(e)}")
            last_error = e
    raise last_error or RuntimeError("All models unavailable")


def generate(
    prompt: str,
    mode: Optional[str] = None,
    files: Optional[List[Dict[str, Any]]] = None,
    student_name: Optional[str] = None,
) -> str:
    """
    Run ``prompt`` through the given mode. Without a mode the prompt goes to
    the legacy model chain with no system prompt.
    """
    if (not prompt or not prompt.strip()) and not files:
        raise ValueError("Prompt or files are required")

    prompt = anonymize(prompt or "", student_name)

    if mode is None:
        return _with_fallback(LEGACY_MODELS, None, prompt, files)

    config = AI_MODES.get(mode)
    if config is None:
        raise ValueError(f"Invalid AI mode: {mode}. Valid modes: {', '.join(AI_MODES)}")

    system_prompt = config["system_prompt"]
    user_prompt = prompt
    if SYSTEM_PROMPT_SEPARATOR in prompt:
        system_prompt, user_prompt = prompt.split(SYSTEM_PROMPT_SEPARATOR, 1)

    models = [config["model"]]
    if config["model"] == PRO_MODEL:
        models.append(FLASH_MODEL)

    logger.info(f"AI request in mode {mode} ({len(user_prompt)} chars, {len(files or [])} files)")
    return _with_fallback(models, system_prompt, user_prompt, files)


def generate_plaafp(student: Dict[str, Any], strengths: str, needs: str, impact: str = "") -> str:
    if not (strengths or "").strip() and not (needs or "").strip():
        raise ValueError("Provide at least strengths or needs to draft a PLAAFP")

    prompt = (
        f"Student grade: {student.get('grade') or 'Unknown'}\n"
        f"Primary need: {student.get('primary_need') or 'Unknown'}\n"
        f"Strengths: {strengths or 'Not provided'}\n"
        f"Needs: {needs or 'Not provided'}\n"
        f"Impact of disability: {impact or 'Not provided'}\n\n"
        "Write the PLAAFP statement."
    )
    return format_ai_response(generate(prompt, mode="plaafp", student_name=student.get("name")))


def _extract_json_object(text: str) -> Dict[str, Any]:
    content = text.strip()
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[len("json"):]
    match = re.search(r"\{[\s\S]*\}", content)
    if not match:
        raise RuntimeError("AI response did not contain a JSON object")
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise RuntimeError(f"AI response was not valid JSON: {str(e)}")


def analyze_tone(text: str) -> Dict[str, Any]:
    if not text or not text.strip():
        raise ValueError("Text is required")

    parsed = _extract_json_object(generate(text, mode="tone"))
    try:
        score = int(round(float(parsed.get("score", 1))))
    except (TypeError, ValueError):
        raise RuntimeError("AI response had a non-numeric score")

    return {
        "score": max(1, min(10, score)),
        "flagged_phrases": [str(p) for p in parsed.get("flagged_phrases") or parsed.get("flaggedPhrases") or []],
        "better_alternatives": [
            str(p) for p in parsed.get("better_alternatives") or parsed.get("betterAlternatives") or []
        ],
    }
