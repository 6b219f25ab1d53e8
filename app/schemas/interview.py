"""
Pydantic schemas for the interview workflow endpoints and for validating
structured AI output.

Request bodies use the camelCase keys the web client sends; returned rows
use the database column names.
"""
from typing import Optional, List, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================
# Requests
# ============================================

class CreateSessionRequest(BaseModel):
    """Request model for session creation."""
    category: Optional[str] = Field(None, description="technical | behavioral | communication")


class SessionIdRequest(BaseModel):
    """Request model for steps addressed by session only."""
    sessionId: Optional[str] = Field(None, description="Session ID")

    model_config = ConfigDict(json_schema_extra={"example": {"sessionId": "3f1c2d9e-0b7a-4c1e-9d43-5a8f0e2b6c11"}})


class SubmitAnswerRequest(BaseModel):
    """Request model for answer submission."""
    sessionId: Optional[str] = Field(None, description="Session ID")
    questionId: Optional[str] = Field(None, description="Question ID")
    answerText: Optional[str] = Field(None, description="Typed answer, or a client-side transcript")
    answerMode: Optional[str] = Field(None, description="text | voice")
    responseTime: Optional[float] = Field(0, ge=0, description="Seconds taken to answer")
    audioData: Optional[str] = Field(None, description="Base64-encoded audio/webm recording")
    audioDuration: Optional[float] = Field(0, ge=0, description="Recording length in seconds")


# ============================================
# Responses
# ============================================

class SessionResponse(BaseModel):
    id: str
    category: str
    status: str
    resume_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class QuestionResponse(BaseModel):
    id: str
    session_id: str
    question_text: str
    question_type: str
    question_order: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AnswerResponse(BaseModel):
    id: str
    session_id: str
    question_id: str
    answer_text: str
    answer_mode: str
    response_time: int
    audio_duration: int
    audio_url: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReportStatistics(BaseModel):
    """Derived figures returned with a freshly generated report (not persisted)."""
    totalQuestions: int = 0
    avgResponseTime: int = 0
    totalRecordingDuration: int = 0


class ReportResponse(BaseModel):
    id: str
    session_id: str
    overall_score: int
    clarity_score: int
    content_score: int
    confidence_score: int
    structure_score: int
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    feedback: List[Dict[str, str]] = Field(default_factory=list)
    generated_at: Optional[datetime] = None
    statistics: Optional[ReportStatistics] = None

    model_config = ConfigDict(from_attributes=True)


class SessionEnvelope(BaseModel):
    success: bool = True
    session: SessionResponse


class QuestionsEnvelope(BaseModel):
    success: bool = True
    questions: List[QuestionResponse]


class ParsedResumeEnvelope(BaseModel):
    success: bool = True
    sessionId: str
    parsedData: Dict[str, Any]


class AnswerEnvelope(BaseModel):
    success: bool = True
    answer: AnswerResponse


class ReportEnvelope(BaseModel):
    success: bool = True
    report: ReportResponse


# ============================================
# Structured AI output
# ============================================

def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [str(v) for v in value if v is not None and str(v).strip()]


class ParsedResume(BaseModel):
    """Resume fields extracted by the AI service."""
    name: str = "Candidate"
    email: str = ""
    education: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    projects: List[str] = Field(default_factory=list)
    experience: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def default_name(cls, v):
        return str(v).strip() if v and str(v).strip() else "Candidate"

    @field_validator("email", mode="before")
    @classmethod
    def default_email(cls, v):
        return str(v).strip() if v else ""

    @field_validator("education", "skills", "projects", "experience", "certifications", mode="before")
    @classmethod
    def coerce_list(cls, v):
        return _string_list(v)


class GeneratedQuestion(BaseModel):
    text: str = Field(..., min_length=1)
    type: Optional[str] = None


class GeneratedQuestions(BaseModel):
    questions: List[GeneratedQuestion]


class FeedbackItem(BaseModel):
    question: str = ""
    feedback: str = ""

    @field_validator("question", "feedback", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return "" if v is None else str(v)


class InterviewEvaluation(BaseModel):
    """Scores and feedback returned by the evaluation call. Scores are clamped to 0-100."""
    clarity_score: int
    content_score: int
    confidence_score: int
    structure_score: int
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    feedback: List[FeedbackItem] = Field(default_factory=list)

    @field_validator("clarity_score", "content_score", "confidence_score", "structure_score", mode="before")
    @classmethod
    def clamp_score(cls, v):
        score = int(round(float(v)))
        return max(0, min(100, score))

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def cap_list(cls, v):
        return _string_list(v)[:5]

    @field_validator("feedback", mode="before")
    @classmethod
    def drop_malformed_feedback(cls, v):
        return [item for item in (v or []) if isinstance(item, dict)]
