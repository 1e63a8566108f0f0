from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import user_context
from prismpath.schemas.records import CreateGoal

router = APIRouter()


@router.post("/student/{student_id}", status_code=201)
def create_goal(student_id: str, goal: CreateGoal, context=Depends(user_context)):
    return context["service"].save_goal(student_id, goal.model_dump(exclude_none=True), context["user"])


@router.get("/student/{student_id}")
def get_goals_for_student(student_id: str, context=Depends(user_context)):
    return context["service"].get_goals(student_id, context["user"])
