"""
Pydantic schemas for resume endpoints.
"""
from typing import List
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ResumeTextResponse(BaseModel):
    resume_text: str = Field(..., description="Plain text extracted from the PDF")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ATSResultResponse(BaseModel):
    score: int
    status: str
    message: str
    issues: List[str] = Field(default_factory=list)
