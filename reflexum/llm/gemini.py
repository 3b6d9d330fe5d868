"""
Gemini Model Manager - cached Vertex AI model instances.

Models are created once per (model name, system instruction) pair and
shared across calls. Initialization needs GOOGLE_CLOUD_PROJECT and
application-default credentials.
"""

from __future__ import annotations

import os
from functools import lru_cache

from reflexum.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT
from reflexum.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


@lru_cache(maxsize=1)
def _init_vertexai() -> str:
    """
    Initialize the Vertex AI SDK once per process.

    Returns:
        The project id used

    Side Effects:
        - Configures the global vertexai client
    """
    import vertexai

    # Read env vars fresh (settings.py may have stale values if loaded before dotenv)
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    location = os.getenv("GEMINI_LOCATION", "") or GEMINI_LOCATION or "us-central1"
    if not project:
        raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

    vertexai.init(project=project, location=location)
    logger.info("Initialized Vertex AI: project=%s, location=%s", project, location)
    return project


@lru_cache(maxsize=8)
def get_gemini_model(model_name: str | None = None, system_instruction: str | None = None):
    """
    Get or create a shared Gemini model.

    Args:
        model_name: Model id; defaults to GEMINI_MODEL
        system_instruction: Optional system instruction bound to the model

    Returns:
        GenerativeModel

    Raises:
        GeminiInitializationError: If the SDK cannot be configured
    """
    from vertexai.generative_models import GenerativeModel

    name = model_name or GEMINI_MODEL
    try:
        _init_vertexai()
        model = GenerativeModel(name, system_instruction=system_instruction)
    except GeminiInitializationError:
        raise
    except Exception as e:
        logger.error("Failed to initialize Gemini model %s: %s", name, e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    logger.info("Initialized Gemini model: %s", name)
    return model


def clear_model_cache() -> None:
    """
    Clear the cached model instances.

    Useful for testing or when reconfiguration is needed.
    """
    get_gemini_model.cache_clear()
    _init_vertexai.cache_clear()
    logger.info("Cleared Gemini model cache")
