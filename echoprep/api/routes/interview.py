"""
Interview endpoints. Every route requires an access token.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from echoprep.core.auth_dependency import get_current_user
from echoprep.core.responses import api_response
from echoprep.db.models.interview import Interview
from echoprep.db.models.user import User
from echoprep.db.session import get_db
from echoprep.schemas.interview import (
    EndInterviewRequest,
    InterviewResponse,
    MessageRequest,
    StartInterviewRequest,
)
from echoprep.services.ai_service import AIService, get_ai_service
from echoprep.services.interview_service import InterviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/interview", tags=["Interview"])


def get_interview_service(
    db: Session = Depends(get_db),
    ai: AIService = Depends(get_ai_service),
) -> InterviewService:
    return InterviewService(db, ai)


def _serialize(interview: Interview) -> dict:
    return InterviewResponse.model_validate(interview).model_dump(by_alias=True)


@router.post("/start", status_code=status.HTTP_201_CREATED)
def start_interview(
    payload: StartInterviewRequest,
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service),
):
    interview = service.start_interview(current_user, payload.job_role, payload.tech_stack, payload.difficulty)
    return api_response(_serialize(interview), "Interview started successfully", status_code=status.HTTP_201_CREATED)


@router.get("/history")
def interview_history(
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service),
):
    interviews = service.list_interviews(current_user)
    return api_response([_serialize(i) for i in interviews], "History fetched successfully")


@router.post("/end")
def end_interview(
    payload: EndInterviewRequest,
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service),
):
    """Grade a finished interview. Answers 200 even if grading or saving degraded."""
    result = service.end_interview(current_user, payload.transcript, payload.resume_text, payload.job_role)

    if not result["saved"]:
        return api_response(
            {"feedback": result["feedback"], "saved": False},
            "Feedback generated (Save Failed)",
        )
    return api_response(result, "Feedback generated and saved")


@router.post("/{interview_id}/message")
def add_message(
    interview_id: int,
    payload: MessageRequest,
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service),
):
    interview = service.append_message(interview_id, current_user, payload.role, payload.content)
    return api_response(_serialize(interview), "Message added")


@router.get("/{interview_id}")
def get_interview(
    interview_id: int,
    current_user: User = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service),
):
    interview = service.get_interview(interview_id, current_user)
    return api_response(_serialize(interview), "Interview fetched successfully")
