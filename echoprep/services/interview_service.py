"""
Interview session pipeline.

start -> append turns -> end and grade. Every external dependency (model
call, database write) on the grading path degrades to a deterministic
default instead of failing the request: a candidate who finished an interview
always gets feedback back.
"""
import copy
import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import desc
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from echoprep.db.models.interview import (
    DEFAULT_DIFFICULTY,
    DEFAULT_JOB_ROLE,
    STATUS_ENDED,
    STATUS_IN_PROGRESS,
    Interview,
)
from echoprep.db.models.user import User
from echoprep.schemas.ai import InterviewJudgement, round_half_up, to_number
from echoprep.services.ai_service import AIService, AIServiceError

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm having trouble processing that. Could you repeat?"
PLACEHOLDER_TURN = {"role": "user", "content": "Session started"}
AI_UNAVAILABLE_SUMMARY = "AI Service Unavailable (Check Server Logs)"
RESUME_EXCERPT_CHARS = 300

DEFAULT_JUDGEMENT = {
    "overallScore": 0,
    "technicalScore": 0,
    "communicationScore": 0,
    "summary": "Analysis pending.",
    "strengths": [],
    "improvements": [],
    "actions": [],
}


def normalize_transcript(transcript: Any) -> List[Dict[str, str]]:
    """
    Map a client transcript onto user/assistant turns.

    "assistant" and "model" become assistant, every other role (or none) is
    user; falsy content becomes "". An empty result gets a placeholder turn.
    """
    turns = []
    if isinstance(transcript, list):
        for msg in transcript:
            msg = msg if isinstance(msg, dict) else {}
            role = "assistant" if msg.get("role") in ("assistant", "model") else "user"
            content = msg.get("content")
            turns.append({"role": role, "content": str(content) if content else ""})

    if not turns:
        turns.append(dict(PLACEHOLDER_TURN))
    return turns


def build_feedback_prompt(conversation: List[Dict[str, str]], resume_text: Optional[str]) -> str:
    excerpt = resume_text[:RESUME_EXCERPT_CHARS] if resume_text else "N/A"
    return f"""
Analyze this mock technical interview and grade the candidate.

Resume excerpt: "{excerpt}"

Transcript (JSON): {json.dumps(conversation)}

Return strictly valid JSON with exactly these keys:
{{
    "overallScore": integer 0-100,
    "technicalScore": integer 0-100,
    "communicationScore": integer 0-100,
    "summary": "2-3 sentence summary",
    "strengths": ["..."],
    "improvements": ["..."],
    "actions": ["..."]
}}
"""


def grade_interview(ai: AIService, conversation: List[Dict[str, str]], resume_text: Optional[str]) -> Dict[str, Any]:
    """
    Ask the AI for a judgement, falling back to the defaults.

    Never raises: on provider, parse or schema failure the default judgement
    is returned with the unavailable marker as its summary.
    """
    feedback = copy.deepcopy(DEFAULT_JUDGEMENT)
    prompt = build_feedback_prompt(conversation, resume_text)

    try:
        result = ai.generate_judgement(prompt, InterviewJudgement, feature="interview_feedback")
    except AIServiceError as e:
        logger.error(f"Interview grading failed, using defaults: {e}")
        feedback["summary"] = AI_UNAVAILABLE_SUMMARY
        return feedback

    if not result.ok:
        logger.error(f"Interview grading unusable ({result.status.value}), using defaults")
        feedback["summary"] = AI_UNAVAILABLE_SUMMARY
        return feedback

    feedback.update(result.value.model_dump(by_alias=True))
    return feedback


def feedback_columns(feedback: Dict[str, Any]) -> Dict[str, Any]:
    """Persistable feedback: numbers forced through to_number, lists forced to lists."""
    overall = to_number(feedback.get("overallScore"))
    return {
        "overall_score": overall,
        "rating": round_half_up(overall / 10),
        "technical_score": to_number(feedback.get("technicalScore")),
        "communication_score": to_number(feedback.get("communicationScore")),
        "comments": feedback.get("summary") or "No summary generated",
        "strengths": list(feedback.get("strengths") or []),
        "improvements": list(feedback.get("improvements") or []),
        "actions": list(feedback.get("actions") or []),
    }


class InterviewService:
    def __init__(self, db: Session, ai: AIService):
        self.db = db
        self.ai = ai

    def start_interview(
        self,
        user: User,
        job_role: Optional[str],
        tech_stack: Optional[List[str]] = None,
        difficulty: Optional[str] = None,
    ) -> Interview:
        if not job_role or not job_role.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Job Role is required")

        job_role = job_role.strip()
        interview = Interview(
            user_id=user.id,
            job_role=job_role,
            tech_stack=list(tech_stack or []),
            difficulty=difficulty or DEFAULT_DIFFICULTY,
            status=STATUS_IN_PROGRESS,
            conversation=[
                {"role": "system", "content": f"You are an interviewer for a {job_role} position."},
                {"role": "assistant", "content": f"Hello! I see you are applying for the {job_role} role. Are you ready to begin?"},
            ],
        )
        self.db.add(interview)
        self.db.commit()
        self.db.refresh(interview)

        logger.info(f"Interview started: interview_id={interview.id}, user_id={user.id}")
        return interview

    def _get_owned(self, interview_id: int, user: User) -> Interview:
        interview = self.db.query(Interview).filter(Interview.id == interview_id).first()

        if not interview:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Interview not found")
        if interview.user_id != user.id:
            logger.warning(f"Ownership check failed: interview_id={interview_id}, user_id={user.id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not authorized to access this interview"
            )
        return interview

    def get_interview(self, interview_id: int, user: User) -> Interview:
        return self._get_owned(interview_id, user)

    def list_interviews(self, user: User) -> List[Interview]:
        return (
            self.db.query(Interview)
            .filter(Interview.user_id == user.id)
            .order_by(desc(Interview.created_at), desc(Interview.id))
            .all()
        )

    def append_message(self, interview_id: int, user: User, role: str, content: str) -> Interview:
        """
        Append a turn; a user turn also gets an interviewer reply.

        A failing AI adds FALLBACK_REPLY instead of failing the request. No row
        lock is held while the reply is generated; the UPDATE is guarded by the
        version column, so a write that landed in the meantime turns into a 409.
        """
        interview = self._get_owned(interview_id, user)
        if interview.status == STATUS_ENDED:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Interview has already ended")

        # new list so the JSON column is marked dirty
        conversation = list(interview.conversation or [])
        conversation.append({"role": role, "content": content})

        if role == "user":
            try:
                reply = self.ai.generate_reply(conversation, interview.job_role, interview.tech_stack)
            except AIServiceError as e:
                logger.error(f"AI reply failed for interview_id={interview.id}: {e}")
                reply = FALLBACK_REPLY
            conversation.append({"role": "assistant", "content": reply})

        interview.conversation = conversation
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Concurrent append rejected: interview_id={interview_id}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Interview was modified concurrently, retry"
            )
        self.db.refresh(interview)
        return interview

    def end_interview(
        self,
        user: User,
        transcript: Any,
        resume_text: Optional[str] = None,
        job_role: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Normalize, grade and persist a finished interview.

        Returns {"feedback", "interviewId", "saved"}. When the write fails the
        feedback is still returned with saved=False and no interviewId.
        """
        user_id = user.id
        conversation = normalize_transcript(transcript)
        feedback = grade_interview(self.ai, conversation, resume_text)

        try:
            interview = Interview(
                user_id=user_id,
                job_role=job_role or DEFAULT_JOB_ROLE,
                tech_stack=[],
                difficulty=DEFAULT_DIFFICULTY,
                status=STATUS_ENDED,
                conversation=conversation,
                **feedback_columns(feedback),
            )
            self.db.add(interview)
            self.db.commit()
            self.db.refresh(interview)
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"interview_persist_failed: user_id={user_id}, turns={len(conversation)}, "
                f"overall_score={feedback.get('overallScore')}: {type(e).__name__}: {e}",
                exc_info=True
            )
            return {"feedback": feedback, "interviewId": None, "saved": False}

        logger.info(f"Interview graded and saved: interview_id={interview.id}, user_id={user_id}")
        return {"feedback": feedback, "interviewId": interview.id, "saved": True}
