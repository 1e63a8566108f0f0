from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import require_roles
from prismpath.schemas.auth import Role
from prismpath.services.student_service import StudentService, get_student_service

router = APIRouter()


@router.get("")
def get_status(service: StudentService = Depends(get_student_service)):
    return {"status": "ok", **service.backend_status()}


@router.post("/refresh")
def refresh_backend_status(
    user=Depends(require_roles(Role.ADMIN)),
    service: StudentService = Depends(get_student_service),
):
    service.availability.invalidate()
    return {"status": "ok", **service.backend_status()}
