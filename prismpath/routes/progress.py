from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import user_context
from prismpath.schemas.records import CreateProgressPoint

router = APIRouter()


@router.post("/student/{student_id}", status_code=201)
def record_progress(student_id: str, point: CreateProgressPoint, context=Depends(user_context)):
    metadata = point.model_dump(exclude={"goal_id", "value"}, exclude_none=True)
    return context["service"].save_progress_for_user(
        student_id, point.goal_id, point.value, context["user"], metadata=metadata
    )


@router.get("/student/{student_id}/goal/{goal_id}")
def get_goal_progress(student_id: str, goal_id: str, context=Depends(user_context)):
    return context["service"].get_goal_progress(student_id, goal_id, context["user"])
