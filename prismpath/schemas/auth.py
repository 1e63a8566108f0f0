from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class Role(str, Enum):
    ADMIN = "admin"
    SPED = "sped"
    REGULAR_ED = "regular_ed"
    PARENT = "parent"


# --- Profiles (identity uid -> users.uid) ---
class UserProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uid: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str = Role.REGULAR_ED.value
    school: Optional[str] = ""
    school_district: Optional[str] = ""
    school_id: Optional[str] = ""
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class SignUpRequest(BaseModel):
    email: str
    password: str
    name: Optional[str] = None
    role: Role = Role.REGULAR_ED
    school: Optional[str] = ""
    school_district: Optional[str] = ""
    school_id: Optional[str] = ""


class SignInRequest(BaseModel):
    email: str
    password: str


class AuthSession(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile


class PasswordCheck(BaseModel):
    password: str = Field(..., description="Candidate password to score")
