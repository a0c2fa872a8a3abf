"""
Resume endpoints: plain text extraction and ATS scoring.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from echoprep.core.auth_dependency import get_current_user
from echoprep.core.responses import api_response
from echoprep.db.models.user import User
from echoprep.db.session import get_db
from echoprep.schemas.resume import ATSResultResponse, ResumeTextResponse
from echoprep.services.ai_service import AIService, get_ai_service
from echoprep.services.ats_service import ATSService
from echoprep.services.resume_parser import ResumeParseError, TextExtractor, get_text_extractor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resume", tags=["Resume"])


def _read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    # sync handlers run in the threadpool, so read the spooled file directly
    data = file.file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    return data


@router.post("/upload")
def upload_resume(
    resume: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    extractor: TextExtractor = Depends(get_text_extractor),
):
    """Extract text for the interview prompt. Nothing is stored."""
    data = _read_upload(resume)
    try:
        resume_text = extractor.extract_text(data)
    except ResumeParseError as e:
        logger.warning(f"Resume upload unreadable: user_id={current_user.id}, file={resume.filename}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is not a readable PDF")

    logger.info(f"Resume parsed: user_id={current_user.id}, chars={len(resume_text)}")
    return api_response(
        ResumeTextResponse(resume_text=resume_text).model_dump(by_alias=True),
        "Resume parsed successfully",
    )


@router.post("/ats-check")
def ats_check(
    resume: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    ai: AIService = Depends(get_ai_service),
    extractor: TextExtractor = Depends(get_text_extractor),
):
    """Score a resume. Falls back to a canned result instead of failing."""
    data = _read_upload(resume)
    service = ATSService(db, ai, extractor)
    result, message = service.check_ats_score(current_user, resume.filename, data)
    return api_response(ATSResultResponse(**result).model_dump(), message)
