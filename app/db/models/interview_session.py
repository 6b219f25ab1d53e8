"""
InterviewSession model: one practice-interview attempt, scoped by category.
"""
import uuid
from sqlalchemy import Column, String, DateTime, JSON, CheckConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base

CATEGORIES = ("technical", "behavioral", "communication")


def new_id() -> str:
    return str(uuid.uuid4())


class InterviewSession(Base):
    """
    Practice interview session.

    Owns its questions, answers and report; deleting a session cascades to all of them.
    `status` tracks workflow progress (see app.services.session_state).
    """
    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    category = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False, default="created")

    # Structured resume fields extracted by the parse step
    resume_data = Column(JSON, nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    questions = relationship(
        "Question",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Question.question_order",
    )
    answers = relationship("Answer", back_populates="session", cascade="all, delete-orphan", passive_deletes=True)
    report = relationship(
        "Report",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    __table_args__ = (
        CheckConstraint(
            "category IN ('technical', 'behavioral', 'communication')",
            name="ck_sessions_category",
        ),
        Index("idx_sessions_created", "created_at"),
    )

    def __repr__(self):
        return f"<InterviewSession(id={self.id}, category='{self.category}', status='{self.status}')>"
