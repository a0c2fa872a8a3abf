"""
Interview model - one mock interview session and its graded feedback.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from echoprep.db.base import Base

DEFAULT_JOB_ROLE = "Technical Interview"
DEFAULT_DIFFICULTY = "Medium"
DEFAULT_COMMENTS = "Analysis pending"

STATUS_IN_PROGRESS = "in_progress"
STATUS_ENDED = "ended"

TURN_ROLES = ("user", "assistant", "system")


class Interview(Base):
    """
    Interview session owned by a single user.

    conversation is a JSON list of {"role", "content"} turns in received order.
    The feedback columns are numeric from the moment status becomes "ended".
    """
    __tablename__ = "interviews"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    job_role = Column(String, nullable=False, default=DEFAULT_JOB_ROLE)
    tech_stack = Column(JSON, nullable=False, default=list)
    difficulty = Column(String, nullable=False, default=DEFAULT_DIFFICULTY)
    status = Column(String, nullable=False, default=STATUS_IN_PROGRESS)  # in_progress / ended

    conversation = Column(JSON, nullable=False, default=list)

    # Feedback
    overall_score = Column(Integer, nullable=False, default=0)
    technical_score = Column(Integer, nullable=False, default=0)
    communication_score = Column(Integer, nullable=False, default=0)
    rating = Column(Integer, nullable=False, default=0)  # 0-10
    comments = Column(Text, nullable=False, default=DEFAULT_COMMENTS)
    strengths = Column(JSON, nullable=False, default=list)
    improvements = Column(JSON, nullable=False, default=list)
    actions = Column(JSON, nullable=False, default=list)

    # Bumped on every UPDATE; a stale writer gets StaleDataError
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", back_populates="interviews")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_interviews_user_created", "user_id", "created_at"),
    )

    @property
    def feedback(self) -> dict:
        return {
            "overall_score": self.overall_score or 0,
            "technical_score": self.technical_score or 0,
            "communication_score": self.communication_score or 0,
            "rating": self.rating or 0,
            "comments": self.comments or DEFAULT_COMMENTS,
            "strengths": list(self.strengths or []),
            "improvements": list(self.improvements or []),
            "actions": list(self.actions or []),
        }

    def __repr__(self):
        return f"<Interview(id={self.id}, user_id={self.user_id}, status='{self.status}')>"
