"""
Pydantic schemas for interview endpoints.
"""
from typing import Any, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Turn(CamelModel):
    """One role-tagged message in an interview conversation."""
    role: Literal["user", "assistant", "system"]
    content: str = ""


class StartInterviewRequest(CamelModel):
    job_role: Optional[str] = Field(None, description="Role being interviewed for")
    tech_stack: Optional[List[str]] = Field(None, description="Technologies to focus on")
    difficulty: Optional[str] = Field(None, description="Easy / Medium / Hard")

    class Config:
        json_schema_extra = {
            "example": {
                "jobRole": "Backend Engineer",
                "techStack": ["Python", "PostgreSQL"],
                "difficulty": "Medium"
            }
        }


class MessageRequest(CamelModel):
    role: Literal["user", "assistant", "system"]
    content: str = Field(..., description="Turn text")


class EndInterviewRequest(CamelModel):
    # Untrusted client transcript; normalized before use
    transcript: Optional[Any] = Field(None, description="List of {role, content} turns")
    resume_text: Optional[str] = Field(None, description="Parsed resume text")
    job_role: Optional[str] = Field(None, description="Role being interviewed for")

    class Config:
        json_schema_extra = {
            "example": {
                "transcript": [
                    {"role": "assistant", "content": "Tell me about indexes."},
                    {"role": "user", "content": "I know SQL"}
                ],
                "resumeText": "Jane Doe - Backend Engineer...",
                "jobRole": "Backend Engineer"
            }
        }


class InterviewFeedback(CamelModel):
    overall_score: int = 0
    technical_score: int = 0
    communication_score: int = 0
    rating: int = 0
    comments: str = "Analysis pending"
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class InterviewResponse(CamelModel):
    id: int
    user_id: int
    job_role: str
    tech_stack: List[str] = Field(default_factory=list)
    difficulty: str
    status: str
    conversation: List[Turn] = Field(default_factory=list)
    feedback: InterviewFeedback
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
