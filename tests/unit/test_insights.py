"""
Tests for the Gemini insight provider and the LLM retry wrapper.

No test reaches Vertex AI: `call_llm` or the model factory is
monkeypatched.
"""

from __future__ import annotations

import pytest
from tenacity import wait_none

from reflexum.contracts.ports import InsightMode
from reflexum.domain.models import ReportAggregate, TopicCount
from reflexum.domain.settings import Language
from reflexum.errors import InsightError
from reflexum.llm import gemini
from reflexum.llm import insights as insights_module
from reflexum.llm import retry as retry_module
from reflexum.llm.gemini import GeminiInitializationError, clear_model_cache, get_gemini_model
from reflexum.llm.insights import GeminiInsightProvider
from reflexum.llm.prompts import PromptLoader, get_prompt, reload_prompts
from reflexum.observability.telemetry import get_counter


@pytest.fixture
def aggregate():
    return ReportAggregate(
        total_minutes=125.4,
        per_course={"Math": 100, "Art": 25.4},
        top_topics=(TopicCount(topic="algebra", count=2), TopicCount(topic="color", count=1)),
    )


@pytest.fixture
def llm_calls(monkeypatch):
    recorded = []

    def fake_call(prompt, counter_prefix="llm", system_instruction=None, model_name=None):
        recorded.append(
            {"prompt": prompt, "prefix": counter_prefix, "system": system_instruction, "model": model_name}
        )
        return "  - insight one\n- insight two  "

    monkeypatch.setattr(insights_module, "call_llm", fake_call)
    return recorded


class TestPrompts:
    def test_every_prompt_file_exists(self):
        for kind in ("insights", "quiz"):
            for part in ("system", "period", "single"):
                for lang in Language:
                    assert get_prompt(kind, part, lang, body="", topics="", courses="", total_minutes=0)

    def test_missing_prompt(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            PromptLoader(tmp_path).load_prompt("nope")

    def test_body_with_braces_is_safe(self):
        prompt = get_prompt("quiz", "single", Language.EN, body="f(x) = {x | x > 0}")

        assert "{x | x > 0}" in prompt

    def test_reload_keeps_prompts_available(self):
        reload_prompts()

        assert get_prompt("quiz", "period", Language.RU, topics="a").endswith("a")


class TestInsightProvider:
    def test_period_insights_send_only_aggregate(self, llm_calls, aggregate):
        text = GeminiInsightProvider(model_name="gemini-x").summarize_insights(
            aggregate, InsightMode.PERIOD, None, Language.EN
        )

        assert text == "- insight one\n- insight two"
        call = llm_calls[0]
        assert "Time: 125 min" in call["prompt"]
        assert "Courses: Math, Art" in call["prompt"]
        assert "Top topics: algebra, color" in call["prompt"]
        assert call["system"].startswith("You are a study journal assistant")
        assert call["model"] == "gemini-x"
        assert call["prefix"] == "insights"

    def test_single_note_insights_use_body(self, llm_calls, aggregate):
        GeminiInsightProvider().summarize_insights(aggregate, InsightMode.SINGLE, "Group theory notes", "ru")

        assert '"""Group theory notes"""' in llm_calls[0]["prompt"]
        assert llm_calls[0]["system"].startswith("Ты помощник")

    def test_single_mode_without_body_falls_back_to_period(self, llm_calls, aggregate):
        GeminiInsightProvider().summarize_insights(aggregate, InsightMode.SINGLE, "", Language.EN)

        assert llm_calls[0]["prompt"].startswith("Period summary:")

    def test_quiz(self, llm_calls, aggregate):
        GeminiInsightProvider().generate_quiz([], aggregate, InsightMode.PERIOD, None, Language.EN)

        assert llm_calls[0]["prompt"] == "Topics for the period: algebra, color"
        assert "self-check questions" in llm_calls[0]["system"]

    def test_failure_becomes_insight_error(self, monkeypatch, aggregate):
        def fail(*args, **kwargs):
            raise ConnectionError("service unavailable")

        monkeypatch.setattr(insights_module, "call_llm", fail)

        with pytest.raises(InsightError):
            GeminiInsightProvider().summarize_insights(aggregate, InsightMode.PERIOD, None, Language.EN)

    def test_sdk_setup_failure(self, monkeypatch, aggregate):
        def fail(*args, **kwargs):
            raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

        monkeypatch.setattr(insights_module, "call_llm", fail)

        with pytest.raises(InsightError, match="unavailable"):
            GeminiInsightProvider().generate_quiz([], aggregate, InsightMode.PERIOD, None, Language.EN)

    def test_empty_answer(self, monkeypatch, aggregate):
        monkeypatch.setattr(insights_module, "call_llm", lambda *a, **k: "   ")

        with pytest.raises(InsightError):
            GeminiInsightProvider().summarize_insights(aggregate, InsightMode.PERIOD, None, Language.EN)


class FakeResponse:
    text = "- ok"


class FlakyModel:
    def __init__(self, failures):
        self.failures = list(failures)
        self.calls = 0

    def generate_content(self, prompt, generation_config=None):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return FakeResponse()


class TestCallLlmRetry:
    def test_retries_transient_errors(self, monkeypatch):
        from google.api_core.exceptions import ServiceUnavailable

        model = FlakyModel([ServiceUnavailable("busy"), ServiceUnavailable("busy")])
        monkeypatch.setattr(retry_module, "get_gemini_model", lambda *a, **k: model)

        result = retry_module.call_llm.retry_with(wait=wait_none())("prompt", counter_prefix="insights")

        assert result == "- ok"
        assert model.calls == 3
        assert get_counter("llm.insights.service_unavailable") == 2
        assert get_counter("llm.insights.ok") == 1

    def test_non_transient_error_not_retried(self, monkeypatch):
        model = FlakyModel([ValueError("bad request")])
        monkeypatch.setattr(retry_module, "get_gemini_model", lambda *a, **k: model)

        with pytest.raises(ValueError):
            retry_module.call_llm.retry_with(wait=wait_none())("prompt")

        assert model.calls == 1


class TestModelFactory:
    @pytest.fixture(autouse=True)
    def fresh_cache(self):
        clear_model_cache()
        yield
        clear_model_cache()

    def test_missing_project(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
        monkeypatch.setattr(gemini, "GOOGLE_CLOUD_PROJECT", None)

        with pytest.raises(GeminiInitializationError, match="GOOGLE_CLOUD_PROJECT"):
            get_gemini_model()

    def test_models_cached_per_instruction(self, monkeypatch):
        import vertexai
        from vertexai import generative_models

        inits = []
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "study-project")
        monkeypatch.setattr(vertexai, "init", lambda **kwargs: inits.append(kwargs))

        class FakeModel:
            def __init__(self, name, system_instruction=None):
                self.name = name
                self.system_instruction = system_instruction

        monkeypatch.setattr(generative_models, "GenerativeModel", FakeModel)

        first = get_gemini_model("gemini-x", "system a")

        assert get_gemini_model("gemini-x", "system a") is first
        assert get_gemini_model("gemini-x", "system b") is not first
        assert first.name == "gemini-x"
        assert len(inits) == 1
        assert inits[0]["project"] == "study-project"
