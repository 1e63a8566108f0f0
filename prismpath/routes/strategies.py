from fastapi import APIRouter, Depends

from prismpath.dependencies.auth import current_user
from prismpath.schemas.records import StrategyUsage
from prismpath.services.student_service import StudentService, get_student_service

router = APIRouter()


@router.post("/usage")
def record_strategy_usage(
    body: StrategyUsage,
    user=Depends(current_user),
    service: StudentService = Depends(get_student_service),
):
    return service.increment_strategy_usage(body.strategy)


@router.get("/usage")
def get_all_strategy_usage(user=Depends(current_user), service: StudentService = Depends(get_student_service)):
    usage = service.get_all_strategy_usage()
    return sorted(
        ({"strategy_id": key, "count": count} for key, count in usage.items()),
        key=lambda item: item["count"],
        reverse=True,
    )


@router.get("/usage/{strategy_id}")
def get_strategy_usage(
    strategy_id: str,
    user=Depends(current_user),
    service: StudentService = Depends(get_student_service),
):
    return {"strategy_id": strategy_id, "count": service.get_strategy_usage(strategy_id)}
