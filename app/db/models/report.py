"""
Report model for storing AI-scored interview evaluations.
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base
from app.db.models.interview_session import new_id


class Report(Base):
    """
    Performance report for a finished session.

    overall_score is the rounded mean of the four sub-scores; one report per session.
    """
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(
        String(36),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Scores (0-100)
    overall_score = Column(Integer, nullable=False)
    clarity_score = Column(Integer, nullable=False)
    content_score = Column(Integer, nullable=False)
    confidence_score = Column(Integer, nullable=False)
    structure_score = Column(Integer, nullable=False)

    # Ordered lists
    strengths = Column(JSON, nullable=False, default=list)
    improvements = Column(JSON, nullable=False, default=list)
    feedback = Column(JSON, nullable=False, default=list)  # [{"question": ..., "feedback": ...}]

    generated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    session = relationship("InterviewSession", back_populates="report")

    __table_args__ = (
        CheckConstraint("overall_score BETWEEN 0 AND 100", name="ck_reports_overall"),
        CheckConstraint("clarity_score BETWEEN 0 AND 100", name="ck_reports_clarity"),
        CheckConstraint("content_score BETWEEN 0 AND 100", name="ck_reports_content"),
        CheckConstraint("confidence_score BETWEEN 0 AND 100", name="ck_reports_confidence"),
        CheckConstraint("structure_score BETWEEN 0 AND 100", name="ck_reports_structure"),
    )

    def __repr__(self):
        return f"<Report(id={self.id}, session_id={self.session_id}, overall={self.overall_score})>"
