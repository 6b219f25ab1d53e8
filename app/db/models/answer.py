from sqlalchemy import Column, String, Integer, Text, DateTime, ForeignKey, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base
from app.db.models.interview_session import new_id

ANSWER_MODES = ("text", "voice")


class Answer(Base):
    __tablename__ = "answers"

    id = Column(String(36), primary_key=True, default=new_id)
    session_id = Column(String(36), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)

    answer_text = Column(Text, nullable=False, default="")
    answer_mode = Column(String(16), nullable=False)
    response_time = Column(Integer, nullable=False, default=0)  # seconds
    audio_duration = Column(Integer, nullable=False, default=0)  # seconds, 0 for text answers
    audio_url = Column(String, nullable=True)  # object key in the voice-recordings bucket

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    session = relationship("InterviewSession", back_populates="answers")
    question = relationship("Question", back_populates="answer")

    __table_args__ = (
        CheckConstraint("answer_mode IN ('text', 'voice')", name="ck_answers_mode"),
        CheckConstraint("response_time >= 0", name="ck_answers_response_time"),
        CheckConstraint("audio_duration >= 0", name="ck_answers_audio_duration"),
        UniqueConstraint("session_id", "question_id", name="uq_answers_session_question"),
    )

    def __repr__(self):
        return f"<Answer(id={self.id}, question_id={self.question_id}, mode='{self.answer_mode}')>"
