"""
Unit tests for the interview orchestrator.
Tests each workflow step against an in-memory database, local storage and a
scripted AI provider.
"""
import base64

import pytest
from sqlalchemy.orm import sessionmaker

from app.core.errors import ValidationError, NotFoundError, DependencyError, InvalidTransitionError
from app.db.base import Base
from app.db.models import InterviewSession, Question, Answer, Report
from app.db.session import build_engine
from app.schemas.interview import SubmitAnswerRequest, InterviewEvaluation
from app.services import interview_service
from app.services.interview_service import (
    TRANSCRIPTION_UNAVAILABLE,
    NO_ANSWER,
    compute_overall_score,
    round_half_up,
)
from app.services.storage import RESUME_BUCKET, VOICE_BUCKET

DEFAULT_RESUME = {
    "name": "Candidate",
    "email": "",
    "education": [],
    "skills": [],
    "projects": [],
    "experience": [],
    "certifications": [],
}


@pytest.fixture
def session(db):
    return interview_service.create_session(db, "technical")


@pytest.fixture
def questions(db, provider, session):
    return interview_service.generate_questions(db, provider, session.id)


def _answer(session_id, question_id, **kwargs):
    payload = {"sessionId": session_id, "questionId": question_id, "answerMode": "text", "responseTime": 30}
    payload.update(kwargs)
    return SubmitAnswerRequest(**payload)


# ============================================
# Session creation
# ============================================

@pytest.mark.parametrize("category", ["technical", "behavioral", "communication"])
def test_create_session_for_every_category(db, category):
    session = interview_service.create_session(db, category)

    assert session.id
    assert session.category == category
    assert session.resume_data is None
    assert session.status == "created"


@pytest.mark.parametrize("category", [None, "", "sales", "Technical"])
def test_create_session_rejects_unknown_category(db, category):
    with pytest.raises(ValidationError):
        interview_service.create_session(db, category)
    assert db.query(InterviewSession).count() == 0


def test_get_session_not_found(db):
    with pytest.raises(NotFoundError, match="Session not found"):
        interview_service.get_session(db, "missing")


def test_deleting_session_cascades(db, session, questions):
    db.delete(session)
    db.commit()
    assert db.query(Question).count() == 0


# ============================================
# Resume ingestion
# ============================================

def test_ingest_resume_stores_file_and_parsed_data(db, storage, provider, session, tmp_path):
    parsed = interview_service.ingest_resume(
        db, storage, provider, session.id, "technical", "My CV.txt", "text/plain",
        b"Ada Lovelace\nPython, SQL, Docker",
    )

    assert parsed["name"] == "Ada Lovelace"
    assert parsed["skills"] == ["Python", "SQL", "Docker"]
    db.refresh(session)
    assert session.resume_data == parsed
    assert session.status == "resume_parsed"

    stored = list((tmp_path / "storage" / RESUME_BUCKET / session.id).iterdir())
    assert len(stored) == 1
    assert stored[0].name.endswith("_My_CV.txt")

    prompt = provider.calls_for("parse_resume")[0]["messages"][1]["content"]
    assert "Python, SQL, Docker" in prompt


def test_ingest_resume_truncates_text_sent_to_ai(db, storage, provider, session):
    resume = ("a" * 10_000 + "TAIL").encode()

    interview_service.ingest_resume(db, storage, provider, session.id, "technical", "cv.txt", "text/plain", resume)

    prompt = provider.calls_for("parse_resume")[0]["messages"][1]["content"]
    assert "a" * 10_000 in prompt
    assert "TAIL" not in prompt


def test_ingest_resume_degrades_when_ai_unreachable(db, storage, provider, session):
    provider.responses["parse_resume"] = ConnectionError("gateway down")

    parsed = interview_service.ingest_resume(db, storage, provider, session.id, "technical", "cv.txt", "text/plain", b"cv")

    assert parsed == DEFAULT_RESUME
    db.refresh(session)
    assert session.resume_data == DEFAULT_RESUME


def test_ingest_resume_degrades_when_no_structured_result(db, storage, provider, session):
    provider.responses["parse_resume"] = None

    parsed = interview_service.ingest_resume(db, storage, provider, session.id, "technical", "cv.txt", "text/plain", b"cv")

    assert parsed == DEFAULT_RESUME


def test_ingest_resume_without_ai_key_uses_default(db, storage, session):
    parsed = interview_service.ingest_resume(db, storage, None, session.id, "technical", "cv.txt", "text/plain", b"cv")
    assert parsed == DEFAULT_RESUME


def test_ingest_resume_can_be_repeated_before_questions(db, storage, provider, session):
    interview_service.ingest_resume(db, storage, None, session.id, "technical", "cv-v1.txt", "text/plain", b"v1")
    parsed = interview_service.ingest_resume(db, storage, provider, session.id, "technical", "cv-v2.txt", "text/plain", b"v2")

    db.refresh(session)
    assert session.resume_data == parsed
    assert parsed["name"] == "Ada Lovelace"


@pytest.mark.parametrize("data,category", [(None, "technical"), (b"", "technical"), (b"cv", None)])
def test_ingest_resume_requires_file_and_category(db, storage, provider, session, data, category):
    with pytest.raises(ValidationError, match="File and category are required"):
        interview_service.ingest_resume(db, storage, provider, session.id, category, "cv.txt", "text/plain", data)


def test_ingest_resume_storage_failure_is_fatal(db, failing_storage, provider, session):
    with pytest.raises(DependencyError, match="Failed to upload file"):
        interview_service.ingest_resume(
            db, failing_storage, provider, session.id, "technical", "cv.txt", "text/plain", b"cv"
        )
    assert provider.calls == []


def test_ingest_resume_after_questions_is_rejected(db, storage, provider, session, questions):
    with pytest.raises(InvalidTransitionError):
        interview_service.ingest_resume(db, storage, provider, session.id, "technical", "cv.txt", "text/plain", b"cv")


# ============================================
# Question generation
# ============================================

def test_generate_questions_inserts_five_in_order(db, provider, session):
    questions = interview_service.generate_questions(db, provider, session.id)

    assert [q.question_order for q in questions] == [1, 2, 3, 4, 5]
    expected = [q["text"] for q in provider.responses["generate_questions"]["questions"]]
    assert [q.question_text for q in questions] == expected
    # Missing type falls back to the session category
    assert questions[4].question_type == "technical"

    stored = interview_service.list_questions(db, session.id)
    assert [q.id for q in stored] == [q.id for q in questions]
    db.refresh(session)
    assert session.status == "questions_generated"


def test_generate_questions_prompt_uses_resume_and_defaults(db, provider, session):
    interview_service.generate_questions(db, provider, session.id)

    call = provider.calls_for("generate_questions")[0]
    system, user = call["messages"][0]["content"], call["messages"][1]["content"]
    assert "(technical)" in system
    assert "Skills: Not specified" in user
    assert call["schema"]["properties"]["questions"]["minItems"] == 5
    assert call["schema"]["properties"]["questions"]["maxItems"] == 5


def test_generate_questions_truncates_extra_items(db, provider, session):
    extra = {"questions": [{"text": f"Question {i}", "type": "technical"} for i in range(7)]}
    provider.responses["generate_questions"] = extra

    questions = interview_service.generate_questions(db, provider, session.id)

    assert len(questions) == 5
    assert questions[-1].question_text == "Question 4"


@pytest.mark.parametrize("result", [
    RuntimeError("gateway timeout"),
    None,
    {"questions": [{"text": "Only one", "type": "technical"}]},
    {"unexpected": True},
])
def test_generate_questions_failures_are_fatal(db, provider, session, result):
    provider.responses["generate_questions"] = result

    with pytest.raises(DependencyError, match="Failed to generate questions"):
        interview_service.generate_questions(db, provider, session.id)

    assert db.query(Question).count() == 0
    db.refresh(session)
    assert session.status == "created"


def test_generate_questions_without_provider(db, session):
    with pytest.raises(DependencyError, match="AI service not configured"):
        interview_service.generate_questions(db, None, session.id)


def test_generate_questions_twice_is_rejected(db, provider, session, questions):
    with pytest.raises(InvalidTransitionError):
        interview_service.generate_questions(db, provider, session.id)

    assert db.query(Question).count() == 5
    assert len(provider.calls_for("generate_questions")) == 1


def test_generate_questions_unknown_session(db, provider):
    with pytest.raises(NotFoundError):
        interview_service.generate_questions(db, provider, "missing")


# ============================================
# Answer submission
# ============================================

def test_text_answer_is_stored_without_transcription(db, storage, provider, session, questions):
    answer = interview_service.submit_answer(
        db, storage, provider, _answer(session.id, questions[0].id, answerText="I would add an index.")
    )

    assert answer.answer_text == "I would add an index."
    assert answer.answer_mode == "text"
    assert answer.response_time == 30
    assert answer.audio_duration == 0
    assert answer.audio_url is None
    assert provider.transcriptions == []
    db.refresh(session)
    assert session.status == "answering"


def test_text_answer_keeps_provided_audio_duration(db, storage, provider, session, questions):
    answer = interview_service.submit_answer(
        db, storage, provider, _answer(session.id, questions[0].id, answerText="ok", audioDuration=12)
    )
    assert answer.audio_duration == 12


def test_voice_answer_is_uploaded_and_transcribed(db, storage, provider, session, questions, tmp_path):
    audio = b"\x1aE\xdf\xa3webm-audio" * 5000
    request = _answer(
        session.id, questions[1].id,
        answerMode="voice", audioData=base64.b64encode(audio).decode(), audioDuration=41,
    )

    answer = interview_service.submit_answer(db, storage, provider, request)

    assert answer.answer_text == provider.transcript
    assert answer.audio_duration == 41
    assert answer.audio_url.startswith(f"{session.id}/{questions[1].id}_")
    assert answer.audio_url.endswith(".webm")
    assert provider.transcriptions == [audio]
    assert storage.download(VOICE_BUCKET, answer.audio_url) == audio


def test_voice_answer_with_text_skips_transcription(db, storage, provider, session, questions):
    request = _answer(
        session.id, questions[0].id,
        answerMode="voice", answerText="client transcript", audioData=base64.b64encode(b"abc").decode(),
    )

    answer = interview_service.submit_answer(db, storage, provider, request)

    assert answer.answer_text == "client transcript"
    assert answer.audio_url is not None
    assert provider.transcriptions == []


def test_voice_answer_transcription_failure_uses_sentinel(db, storage, provider, session, questions):
    provider.transcribe_error = RuntimeError("whisper unavailable")
    request = _answer(session.id, questions[0].id, answerMode="voice", audioData=base64.b64encode(b"abc").decode())

    answer = interview_service.submit_answer(db, storage, provider, request)

    assert answer.answer_text == TRANSCRIPTION_UNAVAILABLE
    assert answer.audio_url is not None


@pytest.mark.parametrize("answer_text,expected", [(None, ""), ("typed too", "typed too")])
def test_voice_answer_upload_failure_still_inserts(db, failing_storage, provider, session, questions, answer_text, expected):
    request = _answer(
        session.id, questions[0].id,
        answerMode="voice", answerText=answer_text, audioData=base64.b64encode(b"abc").decode(),
    )

    answer = interview_service.submit_answer(db, failing_storage, provider, request)

    assert answer.audio_url is None
    assert answer.answer_text == expected
    assert provider.transcriptions == []
    assert db.query(Answer).count() == 1


def test_voice_answer_rejects_invalid_base64(db, storage, provider, session, questions):
    request = _answer(session.id, questions[0].id, answerMode="voice", audioData="not base64!")
    with pytest.raises(ValidationError, match="not valid base64"):
        interview_service.submit_answer(db, storage, provider, request)


@pytest.mark.parametrize("missing", ["sessionId", "questionId", "answerMode"])
def test_submit_answer_requires_ids_and_mode(db, storage, provider, session, questions, missing):
    request = _answer(session.id, questions[0].id, answerText="x", **{missing: None})
    with pytest.raises(ValidationError, match="Session ID, question ID, and answer mode are required"):
        interview_service.submit_answer(db, storage, provider, request)


def test_submit_answer_rejects_unknown_mode(db, storage, provider, session, questions):
    with pytest.raises(ValidationError, match="Answer mode"):
        interview_service.submit_answer(db, storage, provider, _answer(session.id, questions[0].id, answerMode="video"))


def test_submit_answer_question_from_other_session(db, storage, provider, session, questions):
    other = interview_service.create_session(db, "behavioral")
    with pytest.raises(NotFoundError, match="Question not found"):
        interview_service.submit_answer(db, storage, provider, _answer(other.id, questions[0].id))


def test_submit_answer_twice_for_same_question(db, storage, provider, session, questions):
    interview_service.submit_answer(db, storage, provider, _answer(session.id, questions[0].id, answerText="first"))

    with pytest.raises(InvalidTransitionError):
        interview_service.submit_answer(db, storage, provider, _answer(session.id, questions[0].id, answerText="second"))
    assert db.query(Answer).count() == 1


def test_submit_answer_before_questions(db, storage, provider, session):
    question = Question(session_id=session.id, question_text="Q", question_type="technical", question_order=1)
    db.add(question)
    db.commit()

    with pytest.raises(InvalidTransitionError):
        interview_service.submit_answer(db, storage, provider, _answer(session.id, question.id))


# ============================================
# Report generation
# ============================================

@pytest.mark.parametrize("scores,expected", [
    ((80, 81, 80, 81), 81),  # 80.5 rounds half up
    ((0, 0, 0, 0), 0),
    ((100, 100, 100, 100), 100),
    ((70, 70, 70, 71), 70),  # 70.25
    ((70, 70, 71, 71), 71),  # 70.5
    ((1, 0, 0, 0), 0),       # 0.25
    ((99, 100, 100, 100), 100),  # 99.75
])
def test_overall_score_is_rounded_mean(scores, expected):
    evaluation = InterviewEvaluation(
        clarity_score=scores[0], content_score=scores[1], confidence_score=scores[2], structure_score=scores[3]
    )
    assert compute_overall_score(evaluation) == expected
    assert expected == (sum(scores) + 2) // 4


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_generate_report_scores_and_statistics(db, storage, provider, session, questions):
    interview_service.submit_answer(
        db, storage, provider, _answer(session.id, questions[0].id, answerText="Layered design.", responseTime=20)
    )
    interview_service.submit_answer(
        db, storage, provider,
        _answer(session.id, questions[1].id, answerMode="voice",
                audioData=base64.b64encode(b"abc").decode(), responseTime=45, audioDuration=40),
    )

    report, statistics = interview_service.generate_report(db, provider, session.id)

    assert report.overall_score == 81
    assert (report.clarity_score, report.content_score) == (80, 81)
    assert report.strengths == ["Clear examples", "Good technical depth", "Structured answers"]
    assert len(report.feedback) == 2
    assert statistics == {"totalQuestions": 5, "avgResponseTime": 33, "totalRecordingDuration": 40}
    assert db.query(Report).count() == 1
    db.refresh(session)
    assert session.status == "reported"


def test_generate_report_prompt_marks_unanswered_questions(db, storage, provider, session, questions):
    interview_service.submit_answer(db, storage, provider, _answer(session.id, questions[0].id, answerText="Answer one"))

    interview_service.generate_report(db, provider, session.id)

    prompt = provider.calls_for("evaluate_interview")[0]["messages"][1]["content"]
    assert "A1 (text): Answer one" in prompt
    assert f"A2 (none): {NO_ANSWER}" in prompt
    assert "Category: technical" in prompt


def test_generate_report_without_answers(db, provider, session, questions):
    report, statistics = interview_service.generate_report(db, provider, session.id)

    assert 0 <= report.overall_score <= 100
    assert statistics == {"totalQuestions": 5, "avgResponseTime": 0, "totalRecordingDuration": 0}


def test_generate_report_caps_feedback_to_question_count(db, provider, session, questions):
    evaluation = dict(provider.responses["evaluate_interview"])
    evaluation["feedback"] = [{"question": f"Q{i}", "feedback": "fine"} for i in range(8)]
    provider.responses["evaluate_interview"] = evaluation

    report, _ = interview_service.generate_report(db, provider, session.id)

    assert len(report.feedback) == 5


def test_generate_report_tolerates_non_string_feedback(db, provider, session, questions):
    evaluation = dict(provider.responses["evaluate_interview"])
    evaluation["feedback"] = [{"question": 1, "feedback": None}]
    provider.responses["evaluate_interview"] = evaluation

    report, _ = interview_service.generate_report(db, provider, session.id)

    assert report.feedback == [{"question": "1", "feedback": ""}]


@pytest.mark.parametrize("result", [RuntimeError("rate limited"), None, {"clarity_score": 50}])
def test_generate_report_failures_are_fatal(db, provider, session, questions, result):
    provider.responses["evaluate_interview"] = result

    with pytest.raises(DependencyError, match="Failed to evaluate interview"):
        interview_service.generate_report(db, provider, session.id)
    assert db.query(Report).count() == 0


def test_generate_report_twice_is_rejected(db, provider, session, questions):
    interview_service.generate_report(db, provider, session.id)

    with pytest.raises(InvalidTransitionError, match="already been generated"):
        interview_service.generate_report(db, provider, session.id)
    assert db.query(Report).count() == 1


def test_generate_report_before_questions_is_rejected(db, provider, session):
    with pytest.raises(InvalidTransitionError):
        interview_service.generate_report(db, provider, session.id)


def test_get_report_not_found(db, session):
    with pytest.raises(NotFoundError, match="Report not found"):
        interview_service.get_report(db, session.id)


# ============================================
# Concurrent steps on one session
# ============================================

@pytest.fixture
def two_connections(tmp_path):
    """Two independent DB sessions on a file-backed database."""
    engine = build_engine(f"sqlite:///{tmp_path / 'concurrent.db'}")
    Base.metadata.create_all(bind=engine)
    Sessions = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = Sessions(), Sessions()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()


def test_questions_generated_during_resume_parse_win(two_connections, storage, provider, monkeypatch):
    db_a, db_b = two_connections
    session_id = interview_service.create_session(db_a, "technical").id
    generate = provider.generate_structured

    def generate_questions_meanwhile(messages, schema_name, schema, model, **kwargs):
        if schema_name == "parse_resume":
            interview_service.generate_questions(db_b, provider, session_id)
        return generate(messages, schema_name, schema, model, **kwargs)

    monkeypatch.setattr(provider, "generate_structured", generate_questions_meanwhile)

    with pytest.raises(InvalidTransitionError, match="Resume can no longer be changed"):
        interview_service.ingest_resume(
            db_a, storage, provider, session_id, "technical", "cv.txt", "text/plain", b"Ada Lovelace"
        )

    session = interview_service.get_session(db_a, session_id)
    assert session.status == "questions_generated"
    assert session.resume_data is None
    questions = interview_service.list_questions(db_a, session_id)
    assert len(questions) == 5

    # The session keeps working after the rejected upload
    answer = interview_service.submit_answer(db_a, storage, provider, _answer(session_id, questions[0].id, answerText="ok"))
    assert answer.answer_text == "ok"


def test_answer_submitted_during_report_generation_is_rejected(two_connections, storage, provider, monkeypatch):
    db_a, db_b = two_connections
    session_id = interview_service.create_session(db_a, "technical").id
    question_id = interview_service.generate_questions(db_a, provider, session_id)[0].id
    transcribe = provider.transcribe

    def generate_report_meanwhile(audio, model, **kwargs):
        interview_service.generate_report(db_b, provider, session_id)
        return transcribe(audio, model, **kwargs)

    monkeypatch.setattr(provider, "transcribe", generate_report_meanwhile)
    request = _answer(session_id, question_id, answerMode="voice", audioData=base64.b64encode(b"abc").decode())

    with pytest.raises(InvalidTransitionError, match="Answers can only be submitted"):
        interview_service.submit_answer(db_a, storage, provider, request)

    assert interview_service.get_session(db_a, session_id).status == "reported"
    assert interview_service.list_answers(db_a, session_id) == []
