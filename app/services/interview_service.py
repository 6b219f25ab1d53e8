"""
Interview session orchestration.

Each public function is one workflow step: validate input, load the session,
check the state machine, call storage and/or the AI provider, persist, and
return ORM rows. Nothing is kept in memory between calls.

Failure policy is declared per external call in DEGRADATION_POLICY: a
"degrade" step logs the failure and substitutes a safe default, a "fatal"
step aborts the request with DependencyError.
"""
import logging
import re
import time
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core import config
from app.core.errors import ValidationError, NotFoundError, DependencyError, InvalidTransitionError
from app.db.models import InterviewSession, Question, Answer, Report, CATEGORIES, ANSWER_MODES
from app.llm.provider import LLMProvider
from app.llm.router import get_model_for_feature
from app.schemas.interview import (
    SubmitAnswerRequest,
    ParsedResume,
    GeneratedQuestions,
    InterviewEvaluation,
)
from app.services import prompts
from app.services.audio import decode_base64_chunked
from app.services.resume_parser import parse_resume
from app.services.session_state import Step, next_status, allowed_statuses, rejection_message
from app.services.speech_engine import transcribe_audio
from app.services.storage import RESUME_BUCKET, VOICE_BUCKET, StorageError

logger = logging.getLogger(__name__)

TRANSCRIPTION_UNAVAILABLE = "[Voice answer recorded - transcription unavailable]"
NO_ANSWER = "[No answer provided]"


class FailurePolicy(str, Enum):
    DEGRADE = "degrade"
    FATAL = "fatal"


DEGRADATION_POLICY = {
    "resume_extraction": FailurePolicy.DEGRADE,
    "audio_upload": FailurePolicy.DEGRADE,
    "transcription": FailurePolicy.DEGRADE,
    "question_generation": FailurePolicy.FATAL,
    "interview_evaluation": FailurePolicy.FATAL,
}


def _handle_failure(step: str, error: Exception, message: str) -> None:
    """Absorb `error` if `step` degrades, otherwise raise DependencyError(message)."""
    if DEGRADATION_POLICY[step] is FailurePolicy.DEGRADE:
        logger.warning(f"{step} failed, continuing with default: {error}")
        return
    logger.error(f"{step} failed: {error}", exc_info=error)
    raise DependencyError(message) from error


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _epoch_millis() -> int:
    return int(time.time() * 1000)


def _safe_filename(filename: Optional[str], default: str = "resume") -> str:
    name = Path(filename or "").name
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name).strip("._")
    return name or default


def _require_provider(provider: Optional[LLMProvider]) -> LLMProvider:
    if provider is None:
        logger.error("AI step requested but OPENAI_API_KEY is not configured")
        raise DependencyError("AI service not configured")
    return provider


def _advance_status(db: Session, session: InterviewSession, step: Step, **values) -> None:
    """
    Move `session` along `step` with an UPDATE guarded on its current status,
    writing any extra column `values` in the same statement.

    Raises:
        InvalidTransitionError: if a concurrent request moved the session first
    """
    session_id = session.id
    target = next_status(session.status, step)
    try:
        result = db.execute(
            update(InterviewSession)
            .where(
                InterviewSession.id == session_id,
                InterviewSession.status.in_(allowed_statuses(step)),
            )
            .values(status=target.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return
        db.rollback()
        current = db.query(InterviewSession.status).filter(InterviewSession.id == session_id).scalar()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Status update failed for session {session_id}: {e}", exc_info=True)
        raise DependencyError("Failed to update session") from e

    logger.warning(f"Stale transition rejected: session_id={session_id}, step={step.value}, status={current}")
    raise InvalidTransitionError(rejection_message(current, step))


def _commit(db: Session, failure_message: str, conflict_message: Optional[str] = None) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if conflict_message:
            logger.warning(f"Conflicting write rejected: {e.orig}")
            raise InvalidTransitionError(conflict_message) from e
        logger.error(f"{failure_message}: {e}", exc_info=True)
        raise DependencyError(failure_message) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{failure_message}: {e}", exc_info=True)
        raise DependencyError(failure_message) from e


# ============================================
# Sessions
# ============================================

def create_session(db: Session, category: Optional[str]) -> InterviewSession:
    if not category or category not in CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}")

    session = InterviewSession(category=category)
    db.add(session)
    _commit(db, "Failed to create session")
    db.refresh(session)

    logger.info(f"Session created: session_id={session.id}, category={category}")
    return session


def get_session(db: Session, session_id: Optional[str]) -> InterviewSession:
    if not session_id:
        raise ValidationError("Session ID is required")
    try:
        session = db.get(InterviewSession, session_id)
    except SQLAlchemyError as e:
        logger.error(f"Session lookup failed: {e}", exc_info=True)
        raise DependencyError("Failed to load session") from e
    if session is None:
        raise NotFoundError("Session not found")
    return session


def list_questions(db: Session, session_id: str) -> List[Question]:
    try:
        return (
            db.query(Question)
            .filter(Question.session_id == session_id)
            .order_by(Question.question_order)
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Question query failed for session {session_id}: {e}", exc_info=True)
        raise DependencyError("Failed to fetch questions") from e


def list_answers(db: Session, session_id: str) -> List[Answer]:
    try:
        return db.query(Answer).filter(Answer.session_id == session_id).all()
    except SQLAlchemyError as e:
        logger.error(f"Answer query failed for session {session_id}: {e}", exc_info=True)
        raise DependencyError("Failed to fetch answers") from e


def get_report(db: Session, session_id: str) -> Report:
    get_session(db, session_id)
    report = db.query(Report).filter(Report.session_id == session_id).first()
    if report is None:
        raise NotFoundError("Report not found")
    return report


# ============================================
# Resume ingestion
# ============================================

def extract_resume_data(provider: Optional[LLMProvider], resume_text: str) -> Dict[str, Any]:
    """Ask the AI service for structured resume fields; defaults on any failure."""
    parsed = prompts.default_resume_data()
    if provider is None:
        logger.info("OPENAI_API_KEY not configured - skipping AI resume extraction")
        return parsed

    try:
        response = provider.generate_structured(
            prompts.build_resume_messages(resume_text[:config.RESUME_TEXT_LIMIT]),
            schema_name=prompts.RESUME_SCHEMA_NAME,
            schema=prompts.RESUME_SCHEMA,
            model=get_model_for_feature("resume_parse"),
            description="Extract structured resume data",
        )
        if response.data is None:
            raise ValueError("no structured result returned")
        parsed = ParsedResume.model_validate(response.data).model_dump()
        logger.info("Resume parsed successfully with AI")
    except Exception as e:
        _handle_failure("resume_extraction", e, "Failed to parse resume")
    return parsed


def ingest_resume(
    db: Session,
    storage,
    provider: Optional[LLMProvider],
    session_id: Optional[str],
    category: Optional[str],
    filename: Optional[str],
    content_type: Optional[str],
    data: Optional[bytes],
) -> Dict[str, Any]:
    """
    Store a resume, extract its text and structured fields, and save them on the session.

    Returns:
        The structured resume data written to the session
    """
    if not data or not category:
        raise ValidationError("File and category are required")
    if category not in CATEGORIES:
        raise ValidationError(f"Category must be one of: {', '.join(CATEGORIES)}")

    session = get_session(db, session_id)
    next_status(session.status, Step.PARSE_RESUME)
    if category != session.category:
        logger.warning(
            f"Resume category {category} differs from session category {session.category}; "
            f"keeping the session category"
        )

    key = f"{session.id}/{_epoch_millis()}_{_safe_filename(filename)}"
    try:
        stored_key = storage.upload(RESUME_BUCKET, key, data, content_type or "application/octet-stream")
    except StorageError as e:
        logger.error(f"Resume upload failed: {e}")
        raise DependencyError("Failed to upload file") from e

    try:
        stored = storage.download(RESUME_BUCKET, stored_key)
    except StorageError as e:
        logger.error(f"Resume download failed: {e}")
        raise DependencyError("Failed to download file for parsing") from e

    resume_text = parse_resume(stored, content_type, filename)
    parsed = extract_resume_data(provider, resume_text)

    _advance_status(db, session, Step.PARSE_RESUME, resume_data=parsed)
    _commit(db, "Failed to save parsed data")

    logger.info(f"Resume parsing completed: session_id={session.id}, key={stored_key}")
    return parsed


# ============================================
# Question generation
# ============================================

def generate_questions(db: Session, provider: Optional[LLMProvider], session_id: Optional[str]) -> List[Question]:
    """Generate and store exactly QUESTIONS_PER_SESSION questions, ordered from 1."""
    if not session_id:
        raise ValidationError("Session ID is required")
    provider = _require_provider(provider)
    session = get_session(db, session_id)
    next_status(session.status, Step.GENERATE_QUESTIONS)

    count = config.QUESTIONS_PER_SESSION
    logger.info(f"Generating questions: session_id={session.id}, category={session.category}")

    generated = None
    try:
        response = provider.generate_structured(
            prompts.build_question_messages(session.category, session.resume_data, count),
            schema_name=prompts.QUESTIONS_SCHEMA_NAME,
            schema=prompts.questions_schema(count),
            model=get_model_for_feature("question_generation"),
            description=f"Generate {count} diverse interview questions",
        )
        if response.data is None:
            raise ValueError("no structured result returned")
        generated = GeneratedQuestions.model_validate(response.data).questions
        if len(generated) < count:
            raise ValueError(f"expected {count} questions, got {len(generated)}")
    except Exception as e:
        _handle_failure("question_generation", e, "Failed to generate questions")

    questions = [
        Question(
            session_id=session.id,
            question_text=item.text.strip(),
            question_type=(item.type or "").strip() or session.category,
            question_order=order,
        )
        for order, item in enumerate(generated[:count], start=1)
    ]
    _advance_status(db, session, Step.GENERATE_QUESTIONS)
    db.add_all(questions)
    _commit(
        db,
        "Failed to save questions",
        conflict_message="Questions have already been generated for this session",
    )

    logger.info(f"Questions saved: session_id={session.id}, count={len(questions)}")
    return questions


# ============================================
# Answer submission
# ============================================

def _store_voice_answer(
    storage,
    provider: Optional[LLMProvider],
    session_id: str,
    question_id: str,
    audio_data: str,
    answer_text: Optional[str],
) -> Tuple[Optional[str], Optional[str]]:
    """Upload a recording and transcribe it when no text was supplied. Returns (text, audio_url)."""
    try:
        audio = decode_base64_chunked(audio_data, config.AUDIO_CHUNK_SIZE)
    except ValueError as e:
        raise ValidationError("Audio data is not valid base64") from e

    key = f"{session_id}/{question_id}_{_epoch_millis()}.webm"
    try:
        audio_url = storage.upload(VOICE_BUCKET, key, audio, "audio/webm")
    except StorageError as e:
        _handle_failure("audio_upload", e, "Failed to upload audio")
        return answer_text, None

    if answer_text:
        return answer_text, audio_url
    if provider is None:
        logger.info("OPENAI_API_KEY not configured - voice answer stored without transcript")
        return answer_text, audio_url

    try:
        answer_text = transcribe_audio(provider, audio)
        logger.info(f"Transcription successful: question_id={question_id}")
    except Exception as e:
        _handle_failure("transcription", e, "Failed to transcribe audio")
        answer_text = TRANSCRIPTION_UNAVAILABLE
    return answer_text, audio_url


def submit_answer(
    db: Session,
    storage,
    provider: Optional[LLMProvider],
    request: SubmitAnswerRequest,
) -> Answer:
    if not request.sessionId or not request.questionId or not request.answerMode:
        raise ValidationError("Session ID, question ID, and answer mode are required")
    if request.answerMode not in ANSWER_MODES:
        raise ValidationError(f"Answer mode must be one of: {', '.join(ANSWER_MODES)}")

    session = get_session(db, request.sessionId)
    question = (
        db.query(Question)
        .filter(Question.id == request.questionId, Question.session_id == session.id)
        .first()
    )
    if question is None:
        raise NotFoundError("Question not found")
    next_status(session.status, Step.SUBMIT_ANSWER)

    duplicate = (
        db.query(Answer.id)
        .filter(Answer.session_id == session.id, Answer.question_id == question.id)
        .first()
    )
    if duplicate:
        raise InvalidTransitionError("An answer has already been submitted for this question")

    logger.info(f"Submitting answer: session_id={session.id}, question_id={question.id}, mode={request.answerMode}")

    answer_text = request.answerText
    audio_url = None
    if request.answerMode == "voice" and request.audioData:
        answer_text, audio_url = _store_voice_answer(
            storage, provider, session.id, question.id, request.audioData, answer_text
        )

    answer = Answer(
        session_id=session.id,
        question_id=question.id,
        answer_text=answer_text or "",
        answer_mode=request.answerMode,
        response_time=round_half_up(request.responseTime or 0),
        audio_duration=round_half_up(request.audioDuration or 0),
        audio_url=audio_url,
    )
    _advance_status(db, session, Step.SUBMIT_ANSWER)
    db.add(answer)
    _commit(
        db,
        "Failed to save answer",
        conflict_message="An answer has already been submitted for this question",
    )
    db.refresh(answer)

    logger.info(f"Answer saved: answer_id={answer.id}")
    return answer


# ============================================
# Report generation
# ============================================

def build_transcript(questions: List[Question], answers: List[Answer]) -> List[Dict[str, Any]]:
    """Pair each question with its answer by question id, in question order."""
    by_question = {a.question_id: a for a in answers}
    transcript = []
    for q in questions:
        answer = by_question.get(q.id)
        transcript.append({
            "question": q.question_text,
            "answer": (answer.answer_text if answer else "") or NO_ANSWER,
            "mode": answer.answer_mode if answer else "none",
            "responseTime": answer.response_time if answer else 0,
        })
    return transcript


def compute_overall_score(evaluation: InterviewEvaluation) -> int:
    total = (
        evaluation.clarity_score
        + evaluation.content_score
        + evaluation.confidence_score
        + evaluation.structure_score
    )
    return round_half_up(total / 4)


def compute_statistics(questions: List[Question], answers: List[Answer]) -> Dict[str, int]:
    avg_response_time = 0
    if answers:
        avg_response_time = round_half_up(sum(a.response_time or 0 for a in answers) / len(answers))
    return {
        "totalQuestions": len(questions),
        "avgResponseTime": avg_response_time,
        "totalRecordingDuration": sum(a.audio_duration or 0 for a in answers),
    }


def generate_report(
    db: Session,
    provider: Optional[LLMProvider],
    session_id: Optional[str],
) -> Tuple[Report, Dict[str, int]]:
    """
    Evaluate the session's answers and store a report.

    Returns:
        (report, statistics) where statistics are derived figures that are not persisted
    """
    if not session_id:
        raise ValidationError("Session ID is required")
    provider = _require_provider(provider)
    session = get_session(db, session_id)
    next_status(session.status, Step.GENERATE_REPORT)

    questions = list_questions(db, session.id)
    answers = list_answers(db, session.id)
    logger.info(f"Generating report: session_id={session.id}, questions={len(questions)}, answers={len(answers)}")

    transcript = build_transcript(questions, answers)

    evaluation = None
    try:
        response = provider.generate_structured(
            prompts.build_evaluation_messages(session.category, session.resume_data, transcript),
            schema_name=prompts.EVALUATION_SCHEMA_NAME,
            schema=prompts.EVALUATION_SCHEMA,
            model=get_model_for_feature("interview_evaluation"),
            description="Evaluate interview performance with scores and feedback",
        )
        if response.data is None:
            raise ValueError("no structured result returned")
        evaluation = InterviewEvaluation.model_validate(response.data)
    except Exception as e:
        _handle_failure("interview_evaluation", e, "Failed to evaluate interview")

    feedback = [item.model_dump() for item in evaluation.feedback[:len(questions)]]
    report = Report(
        session_id=session.id,
        overall_score=compute_overall_score(evaluation),
        clarity_score=evaluation.clarity_score,
        content_score=evaluation.content_score,
        confidence_score=evaluation.confidence_score,
        structure_score=evaluation.structure_score,
        strengths=evaluation.strengths,
        improvements=evaluation.improvements,
        feedback=feedback,
    )
    _advance_status(db, session, Step.GENERATE_REPORT)
    db.add(report)
    _commit(
        db,
        "Failed to save report",
        conflict_message="Report has already been generated for this session",
    )
    db.refresh(report)

    logger.info(f"Report saved: session_id={session.id}, overall_score={report.overall_score}")
    return report, compute_statistics(questions, answers)
