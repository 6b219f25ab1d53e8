"""
Session endpoints: create a session and read back its questions and report.
"""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.dependencies import get_db
from app.schemas.interview import (
    CreateSessionRequest,
    SessionEnvelope,
    SessionResponse,
    QuestionsEnvelope,
    QuestionResponse,
    ReportEnvelope,
    ReportResponse,
)
from app.services import interview_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=SessionEnvelope)
def create_session(body: CreateSessionRequest, db: Session = Depends(get_db)):
    """Start a practice interview in one of the three categories."""
    session = interview_service.create_session(db, body.category)
    return SessionEnvelope(session=SessionResponse.model_validate(session))


@router.get("/{session_id}", response_model=SessionEnvelope)
def get_session(session_id: str, db: Session = Depends(get_db)):
    session = interview_service.get_session(db, session_id)
    return SessionEnvelope(session=SessionResponse.model_validate(session))


@router.get("/{session_id}/questions", response_model=QuestionsEnvelope)
def get_questions(session_id: str, db: Session = Depends(get_db)):
    """Questions of a session, ordered by question_order."""
    interview_service.get_session(db, session_id)
    questions = interview_service.list_questions(db, session_id)
    return QuestionsEnvelope(questions=[QuestionResponse.model_validate(q) for q in questions])


@router.get("/{session_id}/report", response_model=ReportEnvelope)
def get_report(session_id: str, db: Session = Depends(get_db)):
    report = interview_service.get_report(db, session_id)
    return ReportEnvelope(report=ReportResponse.model_validate(report))
