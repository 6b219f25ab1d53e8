"""
Model router for selecting the model used by each workflow feature.
"""
from app.core import config

# Feature -> model mapping
MODEL_ROUTING = {
    "resume_parse": config.LLM_MODEL,
    "question_generation": config.LLM_MODEL,
    "interview_evaluation": config.LLM_MODEL,
    "transcription": config.TRANSCRIPTION_MODEL,
}


def get_model_for_feature(feature: str) -> str:
    """
    Get the model for a feature.

    Args:
        feature: Feature name (e.g., "resume_parse", "transcription")

    Returns:
        Model identifier string
    """
    return MODEL_ROUTING.get(feature, config.LLM_MODEL)


def is_model_available() -> bool:
    """Check if the AI service is configured."""
    return bool(config.OPENAI_API_KEY)
