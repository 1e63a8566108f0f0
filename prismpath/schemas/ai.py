from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class AIFile(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = Field(None, description="pdf, text or image")
    content: Optional[str] = Field(None, description="Extracted text for pdf/text files")
    data: Optional[str] = Field(None, description="Base64 or data-URL image payload")


class GenerateRequest(BaseModel):
    prompt: Optional[str] = ""
    mode: Optional[str] = None
    files: List[AIFile] = Field(default_factory=list)
    student_name: Optional[str] = Field(None, description="Replaced with [Student] before the prompt is sent")


class TransitionPlanRequest(BaseModel):
    interests: List[str] = Field(default_factory=list)
    skills: Dict[str, int] = Field(default_factory=dict)
    student_id: Optional[str] = None


class CareerPathway(BaseModel):
    job_title: str
    why_it_fits: str
    education_needed: str
    iep_goal: str


class TransitionPlan(BaseModel):
    pathways: List[CareerPathway]


class PlaafpRequest(BaseModel):
    student_id: str
    strengths: Optional[str] = ""
    needs: Optional[str] = ""
    impact: Optional[str] = ""


class ToneRequest(BaseModel):
    text: str


class ToneAnalysis(BaseModel):
    score: int
    flagged_phrases: List[str]
    better_alternatives: List[str]
