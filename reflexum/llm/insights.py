"""
Gemini insight provider.

Produces the two optional LLM annotations of a report:
- insights: 3-6 bullet points about the period or the note
- self-check questions: 5 bullets, no answers

Period mode sends only aggregate numbers and names; single-note mode sends
the note body. Any failure (SDK setup, retries exhausted, empty answer)
becomes InsightError so the caller can render the report without it.
"""

from __future__ import annotations

from collections.abc import Sequence

from reflexum.contracts.ports import InsightMode
from reflexum.domain.models import ReportAggregate, StudySession
from reflexum.domain.settings import Language
from reflexum.errors import InsightError
from reflexum.llm.gemini import GeminiInitializationError
from reflexum.llm.prompts import get_prompt
from reflexum.llm.retry import call_llm
from reflexum.observability.logging import get_logger
from reflexum.rendering.i18n import normalize_lang
from reflexum.utils.numbers import round_half_up

logger = get_logger(__name__)


class GeminiInsightProvider:
    """InsightProvider backed by Vertex AI Gemini."""

    def __init__(self, model_name: str | None = None):
        self.model_name = model_name

    def _complete(self, kind: str, user_prompt: str, lang: Language) -> str:
        system = get_prompt(kind, "system", lang)
        try:
            text = call_llm(
                user_prompt,
                counter_prefix=kind,
                system_instruction=system,
                model_name=self.model_name,
            )
        except GeminiInitializationError as e:
            raise InsightError(f"Gemini unavailable: {e}") from e
        except Exception as e:
            logger.warning("%s generation failed: %s", kind, e)
            raise InsightError(f"{kind} generation failed: {e}") from e

        text = (text or "").strip()
        if not text:
            raise InsightError(f"{kind} generation returned no text")
        return text

    def summarize_insights(
        self,
        aggregate: ReportAggregate,
        mode: InsightMode,
        body: str | None,
        lang: Language,
    ) -> str:
        language = normalize_lang(lang)
        if mode == InsightMode.SINGLE and body:
            prompt = get_prompt("insights", "single", language, body=body)
        else:
            prompt = get_prompt(
                "insights",
                "period",
                language,
                total_minutes=round_half_up(aggregate.total_minutes),
                courses=", ".join(aggregate.per_course),
                topics=", ".join(t.topic for t in aggregate.top_topics),
            )
        return self._complete("insights", prompt, language)

    def generate_quiz(
        self,
        sessions: Sequence[StudySession],
        aggregate: ReportAggregate,
        mode: InsightMode,
        body: str | None,
        lang: Language,
    ) -> str:
        language = normalize_lang(lang)
        if mode == InsightMode.SINGLE and body:
            prompt = get_prompt("quiz", "single", language, body=body)
        else:
            prompt = get_prompt(
                "quiz",
                "period",
                language,
                topics=", ".join(t.topic for t in aggregate.top_topics),
            )
        return self._complete("quiz", prompt, language)
