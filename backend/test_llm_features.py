"""
Tests for LLM-related features: response text extraction, JSON recovery,
structured payload validation, prompt construction and provider detection.
"""

import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage
from pydantic import ValidationError

from app.llm import LLMError, as_text, chat_json, load_json, short_error
from app.llm_loader import (
    LLMConfigError,
    create_chat_model,
    get_provider_name,
    supports_native_structured_output,
)
from app.models import AnalysisPayload, SuggestionPayload
from app.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt, build_chat_instructions
from core.messages import message
from core.models import ChartKind
from core.settings import SUGGESTION_COUNT
from testing_helpers import suggestion


class TestResponseText:
    """Tests for pulling reply text out of provider responses."""

    def test_plain_content(self):
        assert as_text(AIMessage("hello")) == "hello"

    def test_list_content_chunks(self):
        msg = AIMessage(content=[{"type": "text", "text": "par"}, "tial"])
        assert as_text(msg) == "partial"

    def test_reasoning_content_fallback(self):
        msg = AIMessage(content="", additional_kwargs={"reasoning_content": "{\"a\": 1}"})
        assert as_text(msg) == '{"a": 1}'

    def test_raw_string(self):
        assert as_text("just text") == "just text"

    def test_short_error(self):
        assert short_error(ValueError("")) == "ValueError"
        assert short_error(RuntimeError("line one\nline two")) == "line one line two"
        assert len(short_error(RuntimeError("x" * 500))) == 200


class TestJsonRecovery:
    """Tests for tolerant JSON parsing of model output."""

    def test_code_fences(self):
        assert load_json('```json\n{"a": 1}\n```') == {"a": 1}

    def test_prose_around_object(self):
        assert load_json('Here you go: {"a": [1, 2]} hope it helps') == {"a": [1, 2]}

    def test_trailing_commas(self):
        assert load_json('{"a": [1, 2,], "b": 3,}') == {"a": [1, 2], "b": 3}

    def test_python_literals(self):
        assert load_json('{"a": None, "b": True, "c": False}') == {"a": None, "b": True, "c": False}

    @pytest.mark.parametrize("text", ["", "   ", "no braces here", '{"a": 1'])
    def test_unrecoverable(self, text):
        with pytest.raises(ValueError):
            load_json(text)


class TestPayloadModels:
    """Tests for the advisory response schema."""

    def test_chart_type_normalized(self):
        payload = SuggestionPayload.model_validate(suggestion("t", " Bar ", "Month", "Revenue"))
        assert payload.chartType == "bar"
        assert payload.to_suggestion().chart_kind == ChartKind.bar

    def test_unknown_chart_type_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            SuggestionPayload.model_validate(suggestion("t", "radar", "Month", "Revenue"))
        assert "chartType must be one of" in str(exc_info.value)

    def test_missing_axis_rejected(self):
        data = suggestion("t", "bar", "Month", "Revenue")
        del data["yAxisKey"]
        with pytest.raises(ValidationError):
            SuggestionPayload.model_validate(data)

    def test_description_optional(self):
        data = suggestion("t", "line", "Month", "Revenue")
        del data["description"]
        assert SuggestionPayload.model_validate(data).description == ""

    def test_empty_suggestion_list_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisPayload(summary="s", suggestions=[])

    def test_to_result_truncates_in_rank_order(self):
        payload = AnalysisPayload.model_validate({
            "summary": "s",
            "suggestions": [suggestion(f"s{i}", "area", "Month", "Revenue") for i in range(5)],
        })
        result = payload.to_result(3)

        assert [s.title for s in result.suggestions] == ["s0", "s1", "s2"]
        assert result.suggestions[0].value_keys == ("Revenue",)

    def test_to_result_keeps_fewer(self):
        payload = AnalysisPayload.model_validate({
            "summary": "s",
            "suggestions": [suggestion("only", "pie", "Region", "Units")],
        })
        assert len(payload.to_result(3).suggestions) == 1


class TestChatJson:

    def test_validates_reply(self):
        llm = FakeListChatModel(responses=['{"summary": "s", "suggestions": [%s]}'
                                           % '{"title": "t", "chartType": "bar", "xAxisKey": "a", "yAxisKey": "b"}'])
        payload = asyncio.run(chat_json(llm, AnalysisPayload, "sys", "user"))
        assert payload.suggestions[0].xAxisKey == "a"

    def test_schema_mismatch_raises_llm_error(self):
        llm = FakeListChatModel(responses=['{"summary": 3}'])
        with pytest.raises(LLMError):
            asyncio.run(chat_json(llm, AnalysisPayload, "sys", "user"))


class TestPrompts:

    def test_system_prompt_asks_for_configured_count(self):
        assert f"exactly {SUGGESTION_COUNT} objects" in ANALYSIS_SYSTEM_PROMPT

    def test_analysis_prompt_keeps_unicode(self):
        prompt = build_analysis_prompt(["月份", "收入"], [{"月份": "一月", "收入": 100}])
        assert '"月份"' in prompt
        assert "FIRST 1 ROWS" in prompt
        assert message("answer_language") in prompt

    def test_chat_instructions(self):
        text = build_chat_instructions("sales.xlsx", ["Month"], [{"Month": "Jan"}])
        assert '"sales.xlsx"' in text
        assert "First 1 rows" in text

    def test_english_locale(self, monkeypatch):
        monkeypatch.setenv("APP_LOCALE", "en")
        prompt = build_analysis_prompt(["A"], [])
        assert "Always answer in English." in prompt


class TestProviderDetection:
    """Tests for provider capability detection."""

    def test_default_provider(self, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        assert get_provider_name() == "groq"

    @pytest.mark.parametrize("provider,native", [
        ("groq", True),
        ("OpenAI", True),
        ("gemini", True),
        ("nvidia", False),
        ("nvcf", False),
    ])
    def test_structured_output_support(self, monkeypatch, provider, native):
        monkeypatch.setenv("LLM_PROVIDER", provider)
        assert supports_native_structured_output() is native

    def test_unsupported_provider(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "carrier-pigeon")
        with pytest.raises(LLMConfigError) as exc_info:
            create_chat_model()
        assert "Unsupported LLM_PROVIDER" in str(exc_info.value)

    def test_missing_key(self, monkeypatch):
        pytest.importorskip("langchain_groq")
        monkeypatch.setenv("LLM_PROVIDER", "groq")
        for name in ("LLM_API_KEY", "GROQ_API_KEY"):
            monkeypatch.delenv(name, raising=False)
        with pytest.raises(LLMConfigError) as exc_info:
            create_chat_model()
        assert "GROQ_API_KEY" in str(exc_info.value)
