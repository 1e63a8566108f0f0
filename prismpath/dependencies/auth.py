from fastapi import Depends, Header, HTTPException
from typing import Optional
import logging
import time

from prismpath.schemas.auth import UserProfile
from prismpath.services.identity import AuthenticationError, IdentityService, get_identity_service
from prismpath.services.student_service import StudentService, get_student_service

logger = logging.getLogger(__name__)


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    if not authorization.startswith("Bearer ") or not authorization[len("Bearer "):].strip():
        raise HTTPException(status_code=401, detail="Invalid token format")
    return authorization[len("Bearer "):].strip()


def _resolve(token: str, identity: IdentityService) -> UserProfile:
    start_time = time.time()
    try:
        profile = identity.resolve_token(token)
    except TimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except AuthenticationError as e:
        logger.warning(f"Rejected token: {str(e)}")
        raise HTTPException(status_code=401, detail=str(e))

    logger.info(f"Authenticated user {profile.uid} ({profile.role}) in {time.time() - start_time:.2f}s")
    return profile


async def current_user(
    authorization: Optional[str] = Header(None),
    identity: IdentityService = Depends(get_identity_service),
) -> UserProfile:
    return _resolve(bearer_token(authorization), identity)


async def optional_user(
    authorization: Optional[str] = Header(None),
    identity: IdentityService = Depends(get_identity_service),
) -> Optional[UserProfile]:
    """Like ``current_user`` but anonymous callers get None instead of a 401."""
    if not authorization:
        return None
    return _resolve(bearer_token(authorization), identity)


def require_roles(*roles: str):
    allowed = {getattr(r, "value", r) for r in roles}

    async def dependency(user: UserProfile = Depends(current_user)) -> UserProfile:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions for this action")
        return user

    return dependency


async def user_context(
    user: UserProfile = Depends(current_user),
    service: StudentService = Depends(get_student_service),
):
    return {
        "service": service,
        "user": user,
        "user_id": user.uid,
    }
