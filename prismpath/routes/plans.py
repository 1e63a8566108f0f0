from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import user_context
from prismpath.schemas.records import PlanText

router = APIRouter()


@router.get("/student/{student_id}/504")
def get_504_accommodations(student_id: str, context=Depends(user_context)):
    return {"text": context["service"].get_504_accommodations(student_id, context["user"])}


@router.put("/student/{student_id}/504")
def save_504_accommodations(student_id: str, body: PlanText, context=Depends(user_context)):
    context["service"].save_504_accommodations(student_id, body.text, context["user"])
    return {"text": body.text}


@router.get("/student/{student_id}/iep")
def get_iep_summary(student_id: str, context=Depends(user_context)):
    return {"text": context["service"].get_iep_summary(student_id, context["user"])}


@router.put("/student/{student_id}/iep")
def save_iep_summary(student_id: str, body: PlanText, context=Depends(user_context)):
    context["service"].save_iep_summary(student_id, body.text, context["user"])
    return {"text": body.text}
