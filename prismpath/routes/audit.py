from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import user_context

router = APIRouter()


@router.get("/student/{student_id}")
def get_student_audit_logs(student_id: str, context=Depends(user_context)):
    return context["service"].get_student_audit_logs(student_id, context["user"])


@router.get("/user/{user_id}")
def get_user_audit_logs(user_id: str, context=Depends(user_context)):
    return context["service"].get_user_audit_logs(user_id, context["user"])
