from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from echoprep.db.base import Base


class Resume(Base):
    """ATS scan result. Written once per successful scan, never updated."""
    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    original_name = Column(String, nullable=False)   # "jane_resume.pdf"
    stored_name = Column(String, nullable=False)     # "1712388230000-jane_resume.pdf"
    ats_score = Column(Integer, nullable=False, default=0)

    # Feedback
    status = Column(String, nullable=False, default="Pending")
    message = Column(Text, nullable=True)
    issues = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="resumes")
