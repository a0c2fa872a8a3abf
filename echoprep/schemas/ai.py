"""
Pydantic schemas for structured AI judgements.

Model output is untrusted: every judgement is parsed into one of these models
before anything downstream reads it.
"""
import math
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

ATS_STATUSES = ("Excellent", "Good", "Needs Improvement", "Critical")


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (85 / 10 -> 9)."""
    return int(math.floor(value + 0.5))


def to_number(value, upper: Optional[int] = 100) -> int:
    """
    Coerce anything the model might send for a score into an int.

    Numbers and numeric strings are rounded and clamped to 0..upper;
    None, NaN, and non-numeric values become 0.
    """
    if isinstance(value, bool):
        value = int(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    number = max(0, round_half_up(number))
    if upper is not None:
        number = min(upper, number)
    return number


class InterviewJudgement(BaseModel):
    """Scored feedback for one finished interview."""
    overall_score: int = Field(0, ge=0, le=100, description="Overall score 0-100")
    technical_score: int = Field(0, ge=0, le=100, description="Technical depth score 0-100")
    communication_score: int = Field(0, ge=0, le=100, description="Communication score 0-100")
    summary: str = Field("Analysis pending.", description="Narrative summary")
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)

    @field_validator("overall_score", "technical_score", "communication_score", mode="before")
    @classmethod
    def coerce_score(cls, v):
        return to_number(v)

    @field_validator("summary", mode="before")
    @classmethod
    def default_summary(cls, v):
        return "Analysis pending." if v is None else v

    @field_validator("strengths", "improvements", "actions", mode="before")
    @classmethod
    def default_list(cls, v):
        return [] if v is None else v

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "overallScore": 72,
                "technicalScore": 70,
                "communicationScore": 78,
                "summary": "Solid fundamentals, thin on system design.",
                "strengths": ["Clear SQL explanations"],
                "improvements": ["Discuss trade-offs"],
                "actions": ["Practice a caching design question"]
            }
        }


class ATSJudgement(BaseModel):
    """ATS scan of a resume."""
    score: int = Field(..., ge=0, le=100)
    status: Literal["Excellent", "Good", "Needs Improvement", "Critical"]
    message: str
    issues: List[str] = Field(..., min_length=1)

    class Config:
        json_schema_extra = {
            "example": {
                "score": 78,
                "status": "Good",
                "message": "Well structured, a few keyword gaps.",
                "issues": ["Add metrics to project bullets"]
            }
        }
