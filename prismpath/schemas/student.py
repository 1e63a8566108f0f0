from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
import uuid

from prismpath.schemas.auth import Role, UserProfile
from prismpath.utils.access_code import generate_access_code
from prismpath.utils.dates import now_iso

HOME_SCHOOL_ID = "home_school"


# --- Students ---
class StudentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    grade: Optional[str] = ""
    primary_need: Optional[str] = None
    diagnosis: Optional[str] = None
    next_iep: Optional[str] = ""
    next_eval: Optional[str] = ""
    next_504: Optional[str] = ""
    school_id: Optional[str] = None
    parent_id: Optional[str] = None
    accommodations: List[str] = Field(default_factory=list)
    learner_profile: Optional[str] = None

    def to_record(self, user: UserProfile) -> Dict[str, Any]:
        """Build the stored student document, deriving access-control fields from the creator's role."""
        is_parent = user.role == Role.PARENT.value
        now = now_iso()

        if is_parent:
            school_id = HOME_SCHOOL_ID
        else:
            school_id = self.school_id or user.school_id or ""

        return {
            "id": str(uuid.uuid4()),
            "name": self.name.strip(),
            "grade": self.grade or "",
            "primary_need": self.primary_need or self.diagnosis or "",
            "next_iep_date": self.next_iep or "",
            "next_eval_date": self.next_eval or "",
            "next_504_date": self.next_504 or "",
            "has_iep": bool(self.next_iep),
            "has_504": bool(self.next_504),
            "accommodations": list(self.accommodations),
            "learner_profile": self.learner_profile,
            "created_by": user.uid,
            "assigned_teachers": [] if is_parent else [user.uid],
            "is_sped_student": user.role == Role.SPED.value,
            "school_id": school_id,
            "parent_id": user.uid if is_parent else (self.parent_id or ""),
            "access_code": generate_access_code(),
            "tracking_token": None,
            "accommodations_504": "",
            "iep_summary": "",
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }


class StudentUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    grade: Optional[str] = None
    primary_need: Optional[str] = None
    next_iep_date: Optional[str] = None
    next_eval_date: Optional[str] = None
    next_504_date: Optional[str] = None
    parent_id: Optional[str] = None
    accommodations: Optional[List[str]] = None
    learner_profile: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        updates = self.model_dump(exclude_unset=True)
        if "next_iep_date" in updates:
            updates["has_iep"] = bool(updates["next_iep_date"])
        if "next_504_date" in updates:
            updates["has_504"] = bool(updates["next_504_date"])
        return updates


class AssignTeacher(BaseModel):
    teacher_id: str


class PublicStudentProfile(BaseModel):
    id: str
    name: str
    grade: Optional[str] = ""
    has_transition_data: bool = False


class AccessCodeLookup(BaseModel):
    access_code: Optional[str] = None
    code: Optional[str] = None

    @property
    def value(self) -> Optional[str]:
        return self.access_code or self.code
