"""
Shared fixtures: in-memory SQLite database, local object storage under
tmp_path, and a scripted AI provider.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import build_engine
from app.core.dependencies import get_db, get_storage, get_llm_provider
from app.llm.provider import LLMProvider, LLMResponse
from app.services.storage import LocalObjectStorage, StorageError


# Setup in-memory SQLite database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"
test_engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


RESUME_RESULT = {
    "name": "Ada Lovelace",
    "email": "ada@example.com",
    "education": ["BSc Mathematics"],
    "skills": ["Python", "SQL", "Docker"],
    "projects": ["Analytical engine simulator"],
    "experience": ["Backend engineer, 3 years"],
    "certifications": [],
}

QUESTIONS_RESULT = {
    "questions": [
        {"text": "Walk me through the architecture of your simulator project.", "type": "technical"},
        {"text": "How would you index a slow SQL query?", "type": "technical"},
        {"text": "Explain container layering in Docker.", "type": "technical"},
        {"text": "Describe a production incident you debugged.", "type": "technical"},
        {"text": "How do you test asynchronous Python code?", "type": ""},
    ]
}

EVALUATION_RESULT = {
    "clarity_score": 80,
    "content_score": 81,
    "confidence_score": 80,
    "structure_score": 81,
    "strengths": ["Clear examples", "Good technical depth", "Structured answers"],
    "improvements": ["Quantify impact", "Be more concise", "Mention trade-offs"],
    "feedback": [
        {"question": "Walk me through the architecture of your simulator project.", "feedback": "Good overview."},
        {"question": "How would you index a slow SQL query?", "feedback": "Mention EXPLAIN."},
    ],
}


class FakeProvider(LLMProvider):
    """Scripted provider: results (or exceptions) keyed by schema name."""

    def __init__(self, responses=None, transcript="I led the migration to Kubernetes."):
        self.responses = {
            "parse_resume": RESUME_RESULT,
            "generate_questions": QUESTIONS_RESULT,
            "evaluate_interview": EVALUATION_RESULT,
        }
        self.responses.update(responses or {})
        self.transcript = transcript
        self.transcribe_error = None
        self.calls = []
        self.transcriptions = []

    def generate_structured(self, messages, schema_name, schema, model, description="", **kwargs):
        self.calls.append({"schema_name": schema_name, "messages": messages, "schema": schema, "model": model})
        result = self.responses.get(schema_name)
        if isinstance(result, Exception):
            raise result
        return LLMResponse(data=result, model=model)

    def transcribe(self, audio, model, filename="audio.webm", content_type="audio/webm"):
        self.transcriptions.append(audio)
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcript

    def calls_for(self, schema_name):
        return [c for c in self.calls if c["schema_name"] == schema_name]


class FailingStorage:
    """Storage whose uploads always fail."""

    def upload(self, bucket, key, data, content_type="application/octet-stream"):
        raise StorageError(f"bucket {bucket} unavailable")

    def download(self, bucket, key):
        raise StorageError(f"bucket {bucket} unavailable")


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=test_engine)
    db = TestSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(str(tmp_path / "storage"))


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(db, storage, provider):
    """TestClient wired to the test database, storage and provider."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_llm_provider] = lambda: provider
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def failing_storage():
    return FailingStorage()
