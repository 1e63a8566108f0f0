from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List


# --- Goals (students.id -> goals.student_id) ---
class CreateGoal(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1)
    area: Optional[str] = None
    baseline: Optional[str] = None
    target: Optional[str] = None
    target_date: Optional[str] = None


# --- Behavior logs ---
class CreateBehaviorLog(BaseModel):
    model_config = ConfigDict(extra="allow")

    behavior: str = Field(..., min_length=1)
    antecedent: Optional[str] = None
    consequence: Optional[str] = None
    intensity: Optional[int] = Field(None, ge=1, le=10)
    duration_minutes: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


# --- Progress data points ---
class CreateProgressPoint(BaseModel):
    model_config = ConfigDict(extra="allow")

    goal_id: str
    value: float
    note: Optional[str] = None


# --- Plan text (504 accommodations / IEP summary) ---
class PlanText(BaseModel):
    text: str = ""


class StrategyUsage(BaseModel):
    strategy: str = Field(..., min_length=1, description="Accommodation strategy text as shown to the teacher")


class RosterUpload(BaseModel):
    csv_text: str
    school_id: Optional[str] = None


class ImportedRoster(BaseModel):
    imported: List[dict]
    errors: List[str]
    warnings: List[str]
