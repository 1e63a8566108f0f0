from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import user_context
from prismpath.schemas.records import CreateBehaviorLog

router = APIRouter()


@router.post("/student/{student_id}", status_code=201)
def create_behavior_log(student_id: str, entry: CreateBehaviorLog, context=Depends(user_context)):
    return context["service"].save_behavior_log(student_id, entry.model_dump(exclude_none=True), context["user"])


@router.get("/student/{student_id}")
def get_behavior_logs(student_id: str, context=Depends(user_context)):
    return context["service"].get_behavior_logs(student_id, context["user"])
