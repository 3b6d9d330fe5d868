"""Shared LLM call with retry logic.

Insight and quiz generation both go through `call_llm`. Transient Vertex AI
failures are converted to builtin exception types and retried with
exponential backoff; anything else propagates on the first attempt.
"""

from __future__ import annotations

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from reflexum.config import LLM_MAX_RETRIES
from reflexum.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_TEMPERATURE
from reflexum.llm.gemini import get_gemini_model
from reflexum.observability.logging import get_logger
from reflexum.observability.telemetry import counter

logger = get_logger(__name__)

RETRYABLE = (TimeoutError, ConnectionError, OSError)


def _transient_errors() -> list[tuple[type[Exception], str, type[Exception]]]:
    """(Vertex AI exception, counter suffix, builtin it becomes)."""
    from google.api_core.exceptions import (
        DeadlineExceeded,
        InternalServerError,
        ResourceExhausted,
        ServiceUnavailable,
    )

    return [
        (DeadlineExceeded, "timeout", TimeoutError),
        (ServiceUnavailable, "service_unavailable", ConnectionError),
        (ResourceExhausted, "rate_limited", OSError),
        (InternalServerError, "internal_error", ConnectionError),
    ]


@retry(
    stop=stop_after_attempt(LLM_MAX_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(RETRYABLE),
    reraise=True,
)
def call_llm(
    prompt: str,
    counter_prefix: str = "llm",
    system_instruction: str | None = None,
    model_name: str | None = None,
) -> str:
    """Call Gemini with retry and Vertex AI exception conversion.

    Args:
        prompt: The user prompt.
        counter_prefix: Telemetry counter prefix (e.g., "insights", "quiz").
        system_instruction: Optional system instruction.
        model_name: Optional model override (the `llmModel` setting).

    Returns:
        The model's response text.

    Raises:
        TimeoutError: Deadline exceeded (retried).
        ConnectionError: Service unavailable or internal error (retried).
        OSError: Rate limited (retried).
        Exception: Anything else, not retried.
    """
    model = get_gemini_model(model_name, system_instruction)
    generation_config = {
        "temperature": GEMINI_TEMPERATURE,
        "max_output_tokens": GEMINI_MAX_TOKENS,
    }

    try:
        response = model.generate_content(prompt, generation_config=generation_config)
    except Exception as e:
        for vertex_error, suffix, builtin in _transient_errors():
            if isinstance(e, vertex_error):
                counter(f"llm.{counter_prefix}.{suffix}")
                logger.warning("LLM call failed (%s), will retry: %s", suffix, e)
                raise builtin(f"LLM {suffix}: {e}") from e
        logger.error("LLM call failed: %s", e)
        raise

    counter(f"llm.{counter_prefix}.ok")
    return response.text
