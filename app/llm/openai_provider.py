"""
OpenAI provider implementation.
"""
import json
import logging
from typing import Optional, Dict, Any
from openai import OpenAI, APIError

from app.core import config
from app.llm.provider import LLMProvider, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """
    OpenAI provider using the official OpenAI SDK.

    Structured output is obtained with a single forced function call whose
    parameters are the requested schema. Requests are single-attempt.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize OpenAI client."""
        self.api_key = api_key or config.OPENAI_API_KEY
        if not self.api_key:
            raise ValueError("OPENAI_API_KEY not configured")
        self.client = OpenAI(
            api_key=self.api_key,
            base_url=base_url or config.OPENAI_BASE_URL,
            timeout=timeout or config.OPENAI_TIMEOUT_SEC,
            max_retries=0,
        )
        logger.info("OpenAI provider initialized")

    def generate_structured(
        self,
        messages: list[Dict[str, str]],
        schema_name: str,
        schema: Dict[str, Any],
        model: str = "gpt-4o-mini",
        description: str = "",
        **kwargs
    ) -> LLMResponse:
        """Generate schema-constrained output through a forced tool call."""
        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                tools=[{
                    "type": "function",
                    "function": {
                        "name": schema_name,
                        "description": description,
                        "parameters": schema,
                    },
                }],
                tool_choice={"type": "function", "function": {"name": schema_name}},
                **kwargs
            )
        except APIError as e:
            logger.error(f"OpenAI API error ({schema_name}): {e}", exc_info=True)
            raise
        except Exception as e:
            logger.error(f"OpenAI error ({schema_name}): {e}", exc_info=True)
            raise

        choice = response.choices[0] if response.choices else None
        message = choice.message if choice else None
        tool_calls = (message.tool_calls or []) if message else []

        data = None
        if tool_calls:
            try:
                data = json.loads(tool_calls[0].function.arguments)
            except (json.JSONDecodeError, TypeError) as e:
                logger.warning(f"Unparseable tool arguments for {schema_name}: {e}")
        else:
            logger.warning(f"No tool call in response for {schema_name}")

        usage = response.usage
        return LLMResponse(
            content=(message.content or "") if message else "",
            data=data if isinstance(data, dict) else None,
            tokens_in=usage.prompt_tokens if usage else 0,
            tokens_out=usage.completion_tokens if usage else 0,
            model=model,
            metadata={"finish_reason": choice.finish_reason if choice else None},
        )

    def transcribe(
        self,
        audio: bytes,
        model: str = "whisper-1",
        filename: str = "audio.webm",
        content_type: str = "audio/webm",
    ) -> str:
        """Transcribe audio with the audio.transcriptions endpoint."""
        try:
            transcript = self.client.audio.transcriptions.create(
                model=model,
                file=(filename, audio, content_type),
            )
        except APIError as e:
            logger.error(f"OpenAI transcription API error: {e}", exc_info=True)
            raise
        return transcript.text
