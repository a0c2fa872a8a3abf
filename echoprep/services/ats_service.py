"""
ATS resume scoring.

A scan that fails anywhere before a valid judgement (unreadable PDF, model
down, malformed output) answers with FALLBACK_RESULT so the scanner page
always has something to render. Fallback scans are not stored.
"""
import logging
import time
from typing import Any, Dict, Tuple

from sqlalchemy.orm import Session

from echoprep.db.models.resume import Resume
from echoprep.db.models.user import User
from echoprep.schemas.ai import ATSJudgement
from echoprep.services.ai_service import AIService, AIServiceError
from echoprep.services.resume_parser import ResumeParseError, TextExtractor

logger = logging.getLogger(__name__)

RESUME_PROMPT_CHARS = 2000

SUCCESS_MESSAGE = "ATS Analysis Complete"
FALLBACK_MESSAGE = "ATS Analysis (Fallback)"

FALLBACK_RESULT = {
    "score": 65,
    "status": "Needs Improvement",
    "message": "We analyzed your resume and found several formatting and keyword gaps.",
    "issues": [
        "Missing 'Skills' section header: ATS parsers look for standard headers.",
        "Quantifiable metrics missing: Add numbers to your achievements (e.g., 'Improved performance by 20%').",
        "File formatting: Ensure you use a standard, single-column layout for best parsing.",
        "Missing Keywords: 'CI/CD', 'System Design', 'Testing' are missing for this role.",
        "Contact Info: Ensure your LinkedIn URL is clickable and email is professional.",
        "Action Verbs: Start bullet points with strong verbs like 'Architected', 'Deployed', 'Optimized'.",
    ],
}


def fallback_result() -> Dict[str, Any]:
    return {**FALLBACK_RESULT, "issues": list(FALLBACK_RESULT["issues"])}


def build_ats_prompt(resume_text: str) -> str:
    return f"""
Act as an expert ATS (Applicant Tracking System) scanner.
Analyze the following resume text for a Software Engineer role.

Resume Text:
"{resume_text[:RESUME_PROMPT_CHARS]}"

Return a strictly valid JSON object (no markdown) with this structure:
{{
    "score": integer 0-100,
    "status": one of "Excellent", "Good", "Needs Improvement", "Critical",
    "message": 1-2 sentence summary,
    "issues": list of 5-7 specific, actionable tips about keywords, formatting, metrics and sections
}}
"""


def stored_name_for(filename: str) -> str:
    return f"{int(time.time() * 1000)}-{filename}"


class ATSService:
    def __init__(self, db: Session, ai: AIService, extractor: TextExtractor):
        self.db = db
        self.ai = ai
        self.extractor = extractor

    def check_ats_score(self, user: User, filename: str, data: bytes) -> Tuple[Dict[str, Any], str]:
        """
        Score a resume PDF.

        Returns (result, message). Only a validated judgement is persisted.
        """
        user_id = user.id
        try:
            resume_text = self.extractor.extract_text(data)
        except ResumeParseError as e:
            logger.warning(f"ATS scan fallback (extraction): user_id={user_id}, file={filename}: {e}")
            return fallback_result(), FALLBACK_MESSAGE

        try:
            result = self.ai.generate_judgement(build_ats_prompt(resume_text), ATSJudgement, feature="ats_check")
        except AIServiceError as e:
            logger.error(f"ATS scan fallback (AI unavailable): user_id={user_id}: {e}")
            return fallback_result(), FALLBACK_MESSAGE

        if not result.ok:
            logger.error(f"ATS scan fallback ({result.status.value}): user_id={user_id}")
            return fallback_result(), FALLBACK_MESSAGE

        judgement = result.value.model_dump()

        try:
            resume = Resume(
                user_id=user_id,
                original_name=filename,
                stored_name=stored_name_for(filename),
                ats_score=judgement["score"],
                status=judgement["status"],
                message=judgement["message"],
                issues=judgement["issues"],
            )
            self.db.add(resume)
            self.db.commit()
            logger.info(f"ATS scan saved: resume_id={resume.id}, user_id={user_id}, score={judgement['score']}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"resume_persist_failed: user_id={user_id}: {type(e).__name__}: {e}", exc_info=True)

        return judgement, SUCCESS_MESSAGE
