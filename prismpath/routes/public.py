from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional

from prismpath.schemas.records import CreateProgressPoint
from prismpath.schemas.student import AccessCodeLookup, PublicStudentProfile
from prismpath.services.student_service import StudentService, get_student_service
from prismpath.utils.access_code import normalize_access_code

router = APIRouter()


def public_profile(student: dict) -> PublicStudentProfile:
    return PublicStudentProfile(
        id=student["id"],
        name=student.get("name") or "",
        grade=student.get("grade") or "",
        has_transition_data=bool(student.get("transition_plan")),
    )


def _lookup(code: Optional[str], service: StudentService) -> dict:
    if not code:
        raise HTTPException(status_code=400, detail="Access code is required")
    if len(normalize_access_code(code)) != 6:
        raise HTTPException(status_code=400, detail="Access code must be exactly 6 characters")

    student = service.get_student_by_access_code(code)
    if not student:
        raise HTTPException(status_code=404, detail="No student profile found with this access code")
    return {"success": True, "student_profile": public_profile(student)}


@router.post("/access-code")
def validate_access_code(body: AccessCodeLookup, service: StudentService = Depends(get_student_service)):
    return _lookup(body.value, service)


@router.get("/access-code")
def validate_access_code_query(
    code: Optional[str] = Query(None),
    service: StudentService = Depends(get_student_service),
):
    return _lookup(code, service)


@router.get("/track/{token}")
def get_tracking_view(token: str, service: StudentService = Depends(get_student_service)):
    view = service.get_tracking_goals(token)
    if not view:
        raise HTTPException(status_code=404, detail="Invalid or expired tracking link")

    return {
        "student": public_profile(view["student"]),
        "goals": [{"id": g["id"], "title": g.get("title"), "target": g.get("target")} for g in view["goals"]],
    }


@router.post("/track/{token}/progress", status_code=201)
def record_tracked_progress(
    token: str,
    point: CreateProgressPoint,
    service: StudentService = Depends(get_student_service),
):
    metadata = point.model_dump(exclude={"goal_id", "value"}, exclude_none=True)
    saved = service.save_progress_by_token(token, point.goal_id, point.value, {**metadata, "source": "quick_track"})
    return {"id": saved["id"], "goal_id": saved["goal_id"], "value": saved["value"], "date": saved["date"]}
