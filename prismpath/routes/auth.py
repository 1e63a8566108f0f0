from fastapi import APIRouter, Depends, Header
from typing import Optional

from prismpath.dependencies.auth import bearer_token, current_user
from prismpath.schemas.auth import AuthSession, PasswordCheck, SignInRequest, SignUpRequest, UserProfile
from prismpath.services.identity import IdentityService, get_identity_service
from prismpath.utils.password_validator import get_password_strength, validate_password

router = APIRouter()


@router.post("/signup", response_model=AuthSession, status_code=201)
def sign_up(request: SignUpRequest, identity: IdentityService = Depends(get_identity_service)):
    return identity.sign_up(request)


@router.post("/signin", response_model=AuthSession)
def sign_in(request: SignInRequest, identity: IdentityService = Depends(get_identity_service)):
    return identity.sign_in(request.email, request.password)


@router.post("/signout")
def sign_out(
    authorization: Optional[str] = Header(None),
    identity: IdentityService = Depends(get_identity_service),
):
    identity.sign_out(bearer_token(authorization))
    return {"message": "Signed out"}


@router.get("/me", response_model=UserProfile)
def get_me(user: UserProfile = Depends(current_user)):
    return user


@router.post("/password-check")
def check_password(body: PasswordCheck):
    result = validate_password(body.password)
    return {**result, "indicator": get_password_strength(body.password)}
