from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from prismpath.config import get_settings
from prismpath.dependencies.auth import current_user, optional_user
from prismpath.dependencies.rate_limit import generate_limiter, get_client_ip, rate_limited, transition_limiter
from prismpath.schemas.ai import (
    GenerateRequest,
    PlaafpRequest,
    ToneAnalysis,
    ToneRequest,
    TransitionPlan,
    TransitionPlanRequest,
)
from prismpath.services import llm
from prismpath.services.student_service import StudentService, get_student_service
from prismpath.services.transition_planner import generate_transition_plan
from prismpath.utils.dates import now_iso

logger = logging.getLogger(__name__)

router = APIRouter()

ANONYMOUS_MODE = "accommodation_gem"


def _anonymous_allowance(request: Request, service: StudentService) -> dict:
    limit = get_settings().anonymous_gem_limit
    uses = service.anonymous_ai_uses(get_client_ip(request))
    return {"uses": uses, "limit": limit, "remaining": max(0, limit - uses)}


@router.post("/generate", dependencies=[Depends(rate_limited(generate_limiter))])
def generate(
    body: GenerateRequest,
    request: Request,
    user=Depends(optional_user),
    service: StudentService = Depends(get_student_service),
):
    if user is None:
        if body.mode != ANONYMOUS_MODE:
            raise HTTPException(status_code=401, detail="Sign in to use this tool")
        if _anonymous_allowance(request, service)["remaining"] <= 0:
            raise HTTPException(
                status_code=403,
                detail="Free trial used. Create a free account to keep using the Accommodation Gem.",
            )

    files = [f.model_dump(exclude_none=True) for f in body.files]
    result = llm.generate(body.prompt or "", mode=body.mode, files=files, student_name=body.student_name)

    if user is None:
        service.record_anonymous_ai_use(get_client_ip(request))
    return {"result": result}


@router.get("/anonymous-usage")
def anonymous_usage(request: Request, service: StudentService = Depends(get_student_service)):
    return _anonymous_allowance(request, service)


@router.post(
    "/transition-plan",
    response_model=TransitionPlan,
    dependencies=[Depends(rate_limited(transition_limiter))],
)
def transition_plan(
    body: TransitionPlanRequest,
    user=Depends(optional_user),
    service: StudentService = Depends(get_student_service),
):
    if body.student_id and user is None:
        raise HTTPException(status_code=401, detail="Sign in to save a transition plan")

    pathways = generate_transition_plan(body.interests, body.skills)

    if body.student_id:
        service.update_student(body.student_id, {
            "transition_plan": {
                "interests": body.interests,
                "skills": body.skills,
                "pathways": pathways,
                "generated_at": now_iso(),
            },
        }, user)
        logger.info(f"Saved transition plan for student {body.student_id}")

    return {"pathways": pathways}


@router.post("/plaafp")
def plaafp(
    body: PlaafpRequest,
    user=Depends(current_user),
    service: StudentService = Depends(get_student_service),
):
    student = service.get_student(body.student_id, user, audit=False)
    return {"result": llm.generate_plaafp(student, body.strengths, body.needs, body.impact)}


@router.post("/tone", response_model=ToneAnalysis)
def tone_check(body: ToneRequest, user=Depends(current_user)):
    return llm.analyze_tone(body.text)
