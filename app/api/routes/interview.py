"""
Interview workflow endpoints: resume parsing, question generation,
answer submission and report generation.
"""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.core.dependencies import get_db, get_storage, get_llm_provider
from app.core.logging_config import sanitize_log_data
from app.llm.provider import LLMProvider
from app.schemas.interview import (
    SessionIdRequest,
    SubmitAnswerRequest,
    ParsedResumeEnvelope,
    QuestionsEnvelope,
    QuestionResponse,
    AnswerEnvelope,
    AnswerResponse,
    ReportEnvelope,
    ReportResponse,
    ReportStatistics,
)
from app.services import interview_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Interview"])


@router.post("/parse-resume", response_model=ParsedResumeEnvelope)
async def parse_resume(
    file: Optional[UploadFile] = File(None),
    category: Optional[str] = Form(None),
    sessionId: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    provider: Optional[LLMProvider] = Depends(get_llm_provider),
):
    """
    Upload a resume (PDF, DOCX or text) and extract structured fields.

    AI extraction failures are not errors: the session gets a default
    structure and the request still succeeds.
    """
    data = await file.read() if file is not None else None
    filename = file.filename if file is not None else None
    content_type = file.content_type if file is not None else None
    logger.info(f"Resume upload: session_id={sessionId}, file={filename}, bytes={len(data) if data else 0}")

    # Storage, parsing and the AI call all block; keep them off the event loop
    parsed = await run_in_threadpool(
        interview_service.ingest_resume,
        db, storage, provider,
        session_id=sessionId,
        category=category,
        filename=filename,
        content_type=content_type,
        data=data,
    )
    return ParsedResumeEnvelope(sessionId=sessionId, parsedData=parsed)


@router.post("/generate-questions", response_model=QuestionsEnvelope)
def generate_questions(
    body: SessionIdRequest,
    db: Session = Depends(get_db),
    provider: Optional[LLMProvider] = Depends(get_llm_provider),
):
    questions = interview_service.generate_questions(db, provider, body.sessionId)
    return QuestionsEnvelope(questions=[QuestionResponse.model_validate(q) for q in questions])


@router.post("/submit-answer", response_model=AnswerEnvelope)
def submit_answer(
    body: SubmitAnswerRequest,
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    provider: Optional[LLMProvider] = Depends(get_llm_provider),
):
    """Store a text answer, or a voice answer with its recording and transcript."""
    logger.debug(f"Submit answer payload: {sanitize_log_data(body.model_dump())}")
    answer = interview_service.submit_answer(db, storage, provider, body)
    return AnswerEnvelope(answer=AnswerResponse.model_validate(answer))


@router.post("/generate-report", response_model=ReportEnvelope)
def generate_report(
    body: SessionIdRequest,
    db: Session = Depends(get_db),
    provider: Optional[LLMProvider] = Depends(get_llm_provider),
):
    """Score the session and return the stored report plus derived statistics."""
    report, statistics = interview_service.generate_report(db, provider, body.sessionId)
    response = ReportResponse.model_validate(report)
    response.statistics = ReportStatistics(**statistics)
    return ReportEnvelope(report=response)
