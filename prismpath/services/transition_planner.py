"""
Post-secondary transition planning: three career pathways for a student's
interests and self-rated skills.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from prismpath.services import llm

logger = logging.getLogger(__name__)

PATHWAY_COUNT = 3
MODEL_FALLBACKS = ["gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.0-flash"]

DEFAULT_WHY = "This pathway aligns with the student's interests and skills."
DEFAULT_EDUCATION = "To be determined based on specific pathway requirements."
DEFAULT_GOAL = (
    "Upon completion of high school, the student will pursue post-secondary education or training "
    "related to their selected career pathway."
)

SYSTEM_PROMPT = """You are an expert Special Education Transition Coordinator with extensive experience helping students with disabilities plan for post-secondary success.

Analyze the student's interests and skill ratings and recommend exactly 3 distinct career pathways. Each pathway must include:
1. Job Title (specific, realistic job title)
2. Why it fits (one sentence explaining why this pathway matches the student's profile)
3. Education Needed (e.g. "2-Year Associates Degree", "Certificate Program", "Apprenticeship")
4. Official IEP Goal (a post-secondary goal statement beginning with "Upon completion of high school, the student will...")

Return a JSON array with exactly 3 objects using these keys: job_title, why_it_fits, education_needed, iep_goal."""

_KEY_ALIASES = {
    "job_title": ("job_title", "jobTitle", "title"),
    "why_it_fits": ("why_it_fits", "whyItFits"),
    "education_needed": ("education_needed", "educationNeeded"),
    "iep_goal": ("iep_goal", "iepGoal"),
}


def build_user_prompt(interests: List[str], skills: Dict[str, Any]) -> str:
    skills_description = ", ".join(f"{skill}: {rating}/5" for skill, rating in skills.items())
    return (
        "Student Profile:\n"
        f"Interests: {', '.join(interests) if interests else 'None specified'}\n"
        f"Skills: {skills_description or 'No skills rated'}\n\n"
        "Generate exactly 3 distinct career pathways as a JSON array. Make the pathways diverse "
        "(different industries or job types) and realistic for the given skill levels."
    )


def placeholder_pathway(index: int) -> Dict[str, str]:
    return {
        "job_title": f"Career Pathway {index}",
        "why_it_fits": DEFAULT_WHY,
        "education_needed": DEFAULT_EDUCATION,
        "iep_goal": DEFAULT_GOAL,
    }


def _normalize(item: Dict[str, Any]) -> Optional[Dict[str, str]]:
    pathway = {}
    for key, aliases in _KEY_ALIASES.items():
        value = next((item[a] for a in aliases if item.get(a)), None)
        pathway[key] = str(value).strip() if value else ""
    if not pathway["job_title"]:
        return None

    pathway["why_it_fits"] = pathway["why_it_fits"] or DEFAULT_WHY
    pathway["education_needed"] = pathway["education_needed"] or DEFAULT_EDUCATION
    pathway["iep_goal"] = pathway["iep_goal"] or (
        "Upon completion of high school, the student will pursue post-secondary education or training "
        f"related to {pathway['job_title']}."
    )
    return pathway


def _parse_json_pathways(text: str) -> List[Dict[str, str]]:
    match = re.search(r"\[[\s\S]*\]", text)
    if not match:
        return []
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []
    pathways = [_normalize(item) for item in parsed if isinstance(item, dict)]
    return [p for p in pathways if p]


def _parse_text_pathways(text: str) -> List[Dict[str, str]]:
    pathways = []
    sections = re.split(r"(?=Career Pathway \d+|Pathway \d+|Job Title:)", text, flags=re.IGNORECASE)

    for section in sections:
        if not section.strip():
            continue
        title = re.search(r"(?:Job Title|Title):\s*([^\n]+)", section, re.IGNORECASE)
        if not title:
            continue
        why = re.search(r"(?:Why it fits|Fit):\s*([^\n]+)", section, re.IGNORECASE)
        education = re.search(r"(?:Education Needed|Education):\s*([^\n]+)", section, re.IGNORECASE)
        goal = re.search(r"(?:Official IEP Goal|IEP Goal|Goal):\s*([^\n]+)", section, re.IGNORECASE)

        pathway = _normalize({
            "job_title": title.group(1),
            "why_it_fits": why.group(1) if why else "",
            "education_needed": education.group(1) if education else "",
            "iep_goal": goal.group(1) if goal else "",
        })
        if pathway:
            pathways.append(pathway)
    return pathways


def parse_career_pathways(text: str) -> List[Dict[str, str]]:
    """Exactly three pathways from model output: JSON first, then labelled text, then placeholders."""
    pathways = _parse_json_pathways(text or "")
    if len(pathways) < PATHWAY_COUNT:
        from_text = _parse_text_pathways(text or "")
        if len(from_text) > len(pathways):
            pathways = from_text

    pathways = pathways[:PATHWAY_COUNT]
    while len(pathways) < PATHWAY_COUNT:
        pathways.append(placeholder_pathway(len(pathways) + 1))
    return pathways


def _call_with_model_fallback(user_prompt: str) -> str:
    last_error: Optional[Exception] = None
    for model in MODEL_FALLBACKS:
        try:
            return llm.call_gemini(model, SYSTEM_PROMPT, user_prompt)
        except llm.AIRateLimitError:
            raise
        except RuntimeError as e:
            message = str(e).lower()
            # Only an unknown or unsupported model moves on to the next one
            if "not found" in message or "not supported" in message or "404" in message:
                logger.warning(f"Transition model {model} unavailable: {str(e)}")
                last_error = e
                continue
            raise
    raise RuntimeError(f"All model attempts failed. Last error: {str(last_error)}")


def generate_transition_plan(interests: List[str], skills: Dict[str, Any]) -> List[Dict[str, str]]:
    if not isinstance(interests, list):
        raise ValueError("interests must be an array")
    if not isinstance(skills, dict):
        raise ValueError("skills must be an object")

    response = _call_with_model_fallback(build_user_prompt(interests, skills))
    pathways = parse_career_pathways(response)
    logger.info(f"Generated transition plan for {len(interests)} interests")
    return pathways
