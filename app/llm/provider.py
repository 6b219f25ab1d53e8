"""
LLM Provider interface for abstracting LLM implementations.
"""
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass


@dataclass
class LLMResponse:
    """Standardized LLM response."""
    content: str = ""
    data: Optional[Dict[str, Any]] = None  # parsed structured output, None if the model returned none
    tokens_in: int = 0
    tokens_out: int = 0
    model: str = ""
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}


class LLMProvider(ABC):
    """Abstract base class for generative text and transcription providers."""

    @abstractmethod
    def generate_structured(
        self,
        messages: list[Dict[str, str]],
        schema_name: str,
        schema: Dict[str, Any],
        model: str,
        description: str = "",
        **kwargs
    ) -> LLMResponse:
        """
        Generate output constrained to a JSON schema.

        Args:
            messages: List of message dicts with 'role' and 'content'
            schema_name: Name of the structured output (function name)
            schema: JSON schema the output must conform to
            model: Model identifier
            description: Human-readable description of the output
            **kwargs: Additional provider-specific parameters

        Returns:
            LLMResponse whose `data` holds the parsed object, or None when the
            model produced no structured result
        """
        pass

    @abstractmethod
    def transcribe(
        self,
        audio: bytes,
        model: str,
        filename: str = "audio.webm",
        content_type: str = "audio/webm",
    ) -> str:
        """
        Transcribe an audio buffer to text.

        Args:
            audio: Raw audio bytes
            model: Transcription model identifier
            filename: File name reported to the service (format hint)
            content_type: MIME type of the audio

        Returns:
            Transcribed text
        """
        pass
