"""
Session progress state machine.

    created -> resume_parsed -> questions_generated -> answering -> reported

Resume parsing is optional and may be repeated until questions exist.
Question generation and report generation happen once per session.

next_status is the early check made before any external call; the write
itself is a guarded UPDATE on allowed_statuses so a concurrent step that
committed first makes the later one fail instead of rolling status back.
"""
from enum import Enum
from typing import List, Optional

from app.core.errors import InvalidTransitionError


class SessionStatus(str, Enum):
    CREATED = "created"
    RESUME_PARSED = "resume_parsed"
    QUESTIONS_GENERATED = "questions_generated"
    ANSWERING = "answering"
    REPORTED = "reported"


class Step(str, Enum):
    PARSE_RESUME = "parse_resume"
    GENERATE_QUESTIONS = "generate_questions"
    SUBMIT_ANSWER = "submit_answer"
    GENERATE_REPORT = "generate_report"


# step -> (states it may start from, state it leads to)
TRANSITIONS = {
    Step.PARSE_RESUME: (
        {SessionStatus.CREATED, SessionStatus.RESUME_PARSED},
        SessionStatus.RESUME_PARSED,
    ),
    Step.GENERATE_QUESTIONS: (
        {SessionStatus.CREATED, SessionStatus.RESUME_PARSED},
        SessionStatus.QUESTIONS_GENERATED,
    ),
    Step.SUBMIT_ANSWER: (
        {SessionStatus.QUESTIONS_GENERATED, SessionStatus.ANSWERING},
        SessionStatus.ANSWERING,
    ),
    Step.GENERATE_REPORT: (
        {SessionStatus.QUESTIONS_GENERATED, SessionStatus.ANSWERING},
        SessionStatus.REPORTED,
    ),
}

_REJECTION_MESSAGES = {
    Step.PARSE_RESUME: "Resume can no longer be changed once questions have been generated",
    Step.GENERATE_QUESTIONS: "Questions have already been generated for this session",
    Step.SUBMIT_ANSWER: "Answers can only be submitted after questions are generated and before the report",
    Step.GENERATE_REPORT: "Report cannot be generated for this session in its current state",
}


def can_transition(current: str, step: Step) -> bool:
    allowed, _ = TRANSITIONS[step]
    try:
        return SessionStatus(current) in allowed
    except ValueError:
        return False


def allowed_statuses(step: Step) -> List[str]:
    """Status values `step` may start from, for use in a guarded UPDATE."""
    return sorted(status.value for status in TRANSITIONS[step][0])


def rejection_message(current: Optional[str], step: Step) -> str:
    if step is Step.GENERATE_REPORT and current == SessionStatus.REPORTED.value:
        return "Report has already been generated for this session"
    return _REJECTION_MESSAGES[step]


def next_status(current: str, step: Step) -> SessionStatus:
    """
    Return the state a session moves to after `step`.

    Raises:
        InvalidTransitionError: if `step` is not allowed from `current`
    """
    if not can_transition(current, step):
        raise InvalidTransitionError(rejection_message(current, step))
    return TRANSITIONS[step][1]
