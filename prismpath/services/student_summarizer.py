from functools import lru_cache
from typing import Any, Dict, List
import json
import logging

from together import Together

from prismpath.config import get_settings, is_configured
from prismpath.services.llm import anonymize

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Unable to generate summary at this time."


@lru_cache(maxsize=1)
def get_together_client() -> Together:
    return Together(api_key=get_settings().together_api_key)


def build_summary_prompt(
    student: Dict[str, Any],
    goals: List[Dict[str, Any]],
    behavior_logs: List[Dict[str, Any]],
    progress: List[Dict[str, Any]],
) -> str:
    formatted_input = {
        "goals": [
            {"title": g.get("title"), "area": g.get("area"), "target": g.get("target")}
            for g in goals
        ],
        "latest_behavior_logs": [
            {
                "date": b.get("timestamp"),
                "behavior": b.get("behavior"),
                "antecedent": b.get("antecedent"),
                "intensity": b.get("intensity"),
            }
            for b in behavior_logs[:10]
        ],
        "progress": [
            {"goal_id": p.get("goal_id"), "value": p.get("value"), "date": p.get("date")}
            for p in progress[:20]
        ],
    }

    prompt = f"""
        You are an IEP assistant tasked with writing a short (max 100 words) progress update about a student.

        The student's general information:
        - Grade Level: {student.get("grade") or "Unknown"}
        - Primary Need: {student.get("primary_need") or "Unknown"}

        Goals the student is working on:
        {json.dumps(formatted_input["goals"], indent=2)}

        Progress data points (newest first):
        {json.dumps(formatted_input["progress"], indent=2)}

        Recent behavior logs (newest first):
        {json.dumps(formatted_input["latest_behavior_logs"], indent=2)}

        Write a natural short paragraph summarizing the student's progress. Use gender and name-neutral language.
        Mention trends, strengths, improvements, and progress towards goals. Keep it factual but positive.
        Make sure it is under 100 words.
    """
    return anonymize(prompt, student.get("name"))


def generate_student_summary(
    student: Dict[str, Any],
    goals: List[Dict[str, Any]],
    behavior_logs: List[Dict[str, Any]],
    progress: List[Dict[str, Any]],
) -> str:
    logger.info(f"Generating progress summary for student {student.get('id')}")
    return call_llm_student_summary(build_summary_prompt(student, goals, behavior_logs, progress))


def call_llm_student_summary(prompt: str) -> str:
    if not is_configured(get_settings().together_api_key):
        logger.warning("TOGETHER_API_KEY not set, skipping progress summary")
        return FALLBACK_SUMMARY

    try:
        response = get_together_client().chat.completions.create(
            model=get_settings().together_model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a helpful assistant that writes IEP progress summaries based on goals, progress data and behavior logs.",
                },
                {"role": "user", "content": prompt},
            ],
            temperature=0.4,
            max_tokens=600,
        )

        return response.choices[0].message.content.strip()

    except Exception as e:
        logger.error(f"LLM summary generation failed: {str(e)}")
        return FALLBACK_SUMMARY
