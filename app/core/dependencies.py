"""
Shared FastAPI dependencies: database session, object storage, AI provider.

Tests replace these through `app.dependency_overrides`.
"""
import logging
from functools import lru_cache
from typing import Optional

from app.db.session import get_db  # noqa: F401  (re-exported for routers)
from app.llm.provider import LLMProvider
from app.llm.router import is_model_available
from app.services.storage import build_storage

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_storage():
    """Object storage shared by all requests."""
    return build_storage()


@lru_cache(maxsize=1)
def get_llm_provider() -> Optional[LLMProvider]:
    """
    The configured AI provider, or None when OPENAI_API_KEY is not set.

    Steps that cannot run without AI turn None into a 500; steps with a
    safe default skip the AI call.
    """
    if not is_model_available():
        logger.warning("OPENAI_API_KEY not configured - AI features disabled")
        return None
    from app.llm.openai_provider import OpenAIProvider
    return OpenAIProvider()
