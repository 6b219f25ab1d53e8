"""
Database models module.

This module imports all database models to ensure they are registered with SQLAlchemy's Base.metadata
before table creation.

All models must be imported here to be included in database migrations and table creation.
"""
from app.db.models.interview_session import InterviewSession, CATEGORIES
from app.db.models.question import Question
from app.db.models.answer import Answer, ANSWER_MODES
from app.db.models.report import Report

# Explicitly export all models for clarity
__all__ = [
    "InterviewSession",
    "Question",
    "Answer",
    "Report",
    "CATEGORIES",
    "ANSWER_MODES",
]
