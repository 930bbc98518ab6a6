"""
Tests for the advisory request and its reconciliation with the live
configuration inside a workspace session.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage

import skills.advise as advise
from app.llm_loader import LLMConfigError
from core.messages import message
from core.models import ChartKind, ConfigUpdateRequest
from server.orchestrator import NoDataset, WorkspaceSession
from skills.advise import request_analysis
from skills.normalize import build_dataset
from skills.recommend import derive_default_config
from skills.validate import InvalidConfiguration
from testing_helpers import analysis_json, suggestion


GOOD_RESPONSE = analysis_json([
    suggestion("Revenue trend", "line", "Month", "Revenue", "Revenue by month"),
    suggestion("Regional share", "pie", "Region", "Revenue"),
    suggestion("Units vs revenue", "scatter", "Units", "Revenue"),
])


def _failing_llm(exc=ConnectionError("network down")):
    llm = MagicMock()
    llm.ainvoke = AsyncMock(side_effect=exc)
    return llm


class _GatedModel:
    """Replies only after ``gate`` is set."""

    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.gate = asyncio.Event()

    async def ainvoke(self, messages):
        await self.gate.wait()
        return AIMessage(self.reply)


def _no_chat(instructions):
    raise LLMConfigError("no key")


class TestRequestAnalysis:

    def test_parses_ranked_suggestions(self, sales_dataset):
        llm = FakeListChatModel(responses=[GOOD_RESPONSE])
        result = asyncio.run(request_analysis(sales_dataset, llm=llm, method="json"))

        assert result.summary == "Monthly revenue figures."
        assert [s.chart_kind for s in result.suggestions] == [
            ChartKind.line, ChartKind.pie, ChartKind.scatter,
        ]
        first = result.suggestions[0]
        assert first.category_key == "Month"
        assert first.value_keys == ("Revenue",)
        assert first.description == "Revenue by month"

    def test_extra_suggestions_truncated(self, sales_dataset):
        reply = analysis_json([suggestion(f"s{i}", "bar", "Month", "Revenue") for i in range(5)])
        result = asyncio.run(request_analysis(
            sales_dataset, llm=FakeListChatModel(responses=[reply]), method="json",
        ))
        assert len(result.suggestions) == 3

    def test_fenced_json_accepted(self, sales_dataset):
        reply = "```json\n" + GOOD_RESPONSE + "\n```"
        result = asyncio.run(request_analysis(
            sales_dataset, llm=FakeListChatModel(responses=[reply]), method="json",
        ))
        assert len(result.suggestions) == 3

    def test_keys_not_checked_against_headers(self, sales_dataset):
        reply = analysis_json([suggestion("Ghost", "bar", "Quarter", "Profit")])
        result = asyncio.run(request_analysis(
            sales_dataset, llm=FakeListChatModel(responses=[reply]), method="json",
        ))
        assert result.suggestions[0].category_key == "Quarter"

    @pytest.mark.parametrize("reply", [
        "not json at all",
        analysis_json([suggestion("Bad kind", "radar", "Month", "Revenue")]),
        analysis_json([]),
        '{"suggestions": []}',
        "",
    ])
    def test_invalid_response_yields_none(self, sales_dataset, reply):
        result = asyncio.run(request_analysis(
            sales_dataset, llm=FakeListChatModel(responses=[reply]), method="json",
        ))
        assert result is None

    def test_transport_error_yields_none(self, sales_dataset):
        result = asyncio.run(request_analysis(sales_dataset, llm=_failing_llm(), method="json"))
        assert result is None

    def test_missing_credentials_yield_none(self, sales_dataset, monkeypatch):
        def _raise(**kwargs):
            raise LLMConfigError("no key")

        monkeypatch.setattr(advise, "get_chat_model", _raise)
        assert asyncio.run(request_analysis(sales_dataset)) is None

    def test_model_construction_error_yields_none(self, sales_dataset, monkeypatch):
        def _bad_model(**kwargs):
            raise ValueError("unknown model option")

        monkeypatch.setattr(advise, "get_chat_model", _bad_model)
        assert asyncio.run(request_analysis(sales_dataset)) is None

    def test_sample_is_capped(self):
        ds = build_dataset("big.xlsx", ["Key", "Value"], [[f"r{i:03d}", i] for i in range(50)])
        llm = MagicMock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(GOOD_RESPONSE))

        asyncio.run(request_analysis(ds, llm=llm, method="json"))

        messages = llm.ainvoke.call_args.args[0]
        user_text = messages[-1].content
        assert '"Key"' in user_text
        assert "r004" in user_text
        assert "r005" not in user_text


class TestWorkspaceReconciliation:

    def _session(self, llm, **kwargs):
        return WorkspaceSession("s1", analysis_llm=llm, analysis_method="json",
                                chat_factory=_no_chat, **kwargs)

    def test_default_visible_then_superseded(self, sales_dataset):
        async def scenario():
            ws = self._session(FakeListChatModel(responses=[GOOD_RESPONSE]))
            await ws.load_dataset(sales_dataset)
            before = ws.config
            analyzing = ws.analyzing
            await ws.wait_for_analysis()
            return ws, before, analyzing

        ws, before, analyzing = asyncio.run(scenario())

        assert before == derive_default_config(sales_dataset)
        assert analyzing is True
        assert ws.analyzing is False
        assert ws.config.chart_kind == ChartKind.line
        assert ws.config.category_key == "Month"
        assert ws.config.value_keys == ["Revenue"]
        assert len(ws.suggestions) == 3

    def test_transport_failure_keeps_default(self, sales_dataset):
        async def scenario():
            ws = self._session(_failing_llm())
            await ws.load_dataset(sales_dataset)
            default = ws.config
            await ws.wait_for_analysis()
            return ws, default

        ws, default = asyncio.run(scenario())
        assert ws.config == default
        assert ws.analysis is None
        assert ws.suggestions == []

    def test_first_applicable_suggestion_auto_applied(self, sales_dataset):
        reply = analysis_json([
            suggestion("Ghost", "line", "Quarter", "Revenue"),
            suggestion("Share", "pie", "Region", "Units"),
        ])

        async def scenario():
            ws = self._session(FakeListChatModel(responses=[reply]))
            await ws.load_dataset(sales_dataset)
            await ws.wait_for_analysis()
            return ws

        ws = asyncio.run(scenario())
        assert ws.suggestions[0].applicable is False
        assert ws.config.chart_kind == ChartKind.pie
        assert ws.config.category_key == "Region"

    def test_manual_apply_is_idempotent(self, sales_dataset):
        async def scenario():
            ws = self._session(FakeListChatModel(responses=[GOOD_RESPONSE]))
            await ws.load_dataset(sales_dataset)
            await ws.wait_for_analysis()
            once = await ws.apply_suggestion(1)
            twice = await ws.apply_suggestion(1)
            return once, twice

        once, twice = asyncio.run(scenario())
        assert once == twice
        assert once.chart_kind == ChartKind.pie

    def test_apply_rejects_bad_index_and_inapplicable(self, sales_dataset):
        reply = analysis_json([suggestion("Ghost", "bar", "Quarter", "Revenue")])

        async def scenario():
            ws = self._session(FakeListChatModel(responses=[reply]))
            await ws.load_dataset(sales_dataset)
            await ws.wait_for_analysis()
            with pytest.raises(IndexError):
                await ws.apply_suggestion(5)
            with pytest.raises(InvalidConfiguration):
                await ws.apply_suggestion(0)
            return ws

        ws = asyncio.run(scenario())
        assert ws.config == derive_default_config(sales_dataset)

    def test_stale_result_discarded_after_clear(self, sales_dataset):
        async def scenario():
            llm = _GatedModel(GOOD_RESPONSE)
            ws = self._session(llm)
            await ws.load_dataset(sales_dataset)
            task = ws._advisory_task
            await ws.clear()
            llm.gate.set()
            await task
            return ws

        ws = asyncio.run(scenario())
        assert ws.dataset is None
        assert ws.config is None
        assert ws.analysis is None

    def test_stale_result_discarded_after_new_dataset(self, sales_dataset):
        other = build_dataset("other.xlsx", ["Team", "Score"], [["a", 1]])

        async def scenario():
            llm = _GatedModel(GOOD_RESPONSE)
            ws = self._session(llm)
            await ws.load_dataset(sales_dataset)
            first_task = ws._advisory_task
            await ws.load_dataset(other)
            llm.gate.set()
            await first_task
            await ws.wait_for_analysis()
            return ws

        ws = asyncio.run(scenario())
        assert ws.dataset.name == "other.xlsx"
        # the second request's suggestions name columns "other" lacks
        assert all(not s.applicable for s in ws.suggestions)
        assert ws.config == derive_default_config(other)

    def test_manual_edit_last_write_wins(self, sales_dataset):
        async def scenario():
            llm = _GatedModel(GOOD_RESPONSE)
            ws = self._session(llm)
            await ws.load_dataset(sales_dataset)
            edited = await ws.update_config(ConfigUpdateRequest(value_keys=["Units"], theme_id="forest"))
            llm.gate.set()
            await ws.wait_for_analysis()
            return ws, edited

        ws, edited = asyncio.run(scenario())
        assert edited.value_keys == ["Units"]
        assert ws.config.chart_kind == ChartKind.line
        assert ws.config.theme_id == "forest"

    def test_update_config_validates(self, sales_dataset):
        async def scenario():
            ws = self._session(_failing_llm())
            with pytest.raises(NoDataset):
                await ws.update_config(ConfigUpdateRequest(category_key="Month"))
            await ws.load_dataset(sales_dataset)
            with pytest.raises(InvalidConfiguration):
                await ws.update_config(ConfigUpdateRequest(category_key="Week"))
            await ws.wait_for_analysis()
            return ws

        ws = asyncio.run(scenario())
        assert ws.config == derive_default_config(sales_dataset)

    def test_chat_construction_error_keeps_load_intact(self, sales_dataset):
        def _broken_chat(instructions):
            raise ValueError("unknown model option")

        async def scenario():
            ws = WorkspaceSession("s1", analysis_llm=FakeListChatModel(responses=[GOOD_RESPONSE]),
                                  analysis_method="json", chat_factory=_broken_chat)
            await ws.load_dataset(sales_dataset)
            started = ws._advisory_task is not None
            await ws.wait_for_analysis()
            reply = await ws.submit_chat("hi")
            return ws, started, reply

        ws, started, reply = asyncio.run(scenario())
        assert started
        assert ws.conversation.available is False
        assert ws.config.chart_kind == ChartKind.line
        assert reply.text == message("chat_unavailable")

    def test_single_header_dataset_has_no_config(self):
        ds = build_dataset("one.xlsx", ["Only"], [[1]])

        async def scenario():
            ws = self._session(_failing_llm())
            await ws.load_dataset(ds)
            await ws.wait_for_analysis()
            return ws

        ws = asyncio.run(scenario())
        assert ws.config is None
        assert ws.chart_spec() is None
