import logging

from app.llm.provider import LLMProvider
from app.llm.router import get_model_for_feature

logger = logging.getLogger(__name__)


def transcribe_audio(provider: LLMProvider, audio_bytes: bytes, filename: str = "audio.webm") -> str:
    """
    Transcribe a recorded answer. Errors propagate to the caller, which
    decides whether to degrade.
    """
    model = get_model_for_feature("transcription")
    logger.info(f"Transcribing {len(audio_bytes)} bytes of audio with {model}")
    text = provider.transcribe(audio_bytes, model=model, filename=filename)
    return (text or "").strip()
