"""
Workspace orchestrator: one live dataset per upload session.

Loading a dataset derives the default chart synchronously, opens the
conversation and starts the advisory request in the background. Every
load or clear bumps ``generation``; background results tagged with an
older generation are discarded.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from pydantic import ValidationError

from app.chat_session import open_chat_session
from core.models import (
    AnalysisResult,
    ChartConfiguration,
    ChartSpec,
    ConfigUpdateRequest,
    ConversationTurn,
    Dataset,
    SuggestionState,
)
from core.storage import drop_session, get_session
from core.themes import DEFAULT_THEME_ID
from server.sse import SSEChannel, WorkspaceEvent
from skills.advise import apply_suggestion, first_applicable, rank_suggestions, request_analysis
from skills.build_view import build_chart_spec
from skills.converse import ConversationContext, SessionFactory
from skills.normalize import build_dataset, dataset_summary
from skills.parse import parse_spreadsheet
from skills.recommend import derive_default_config
from skills.validate import InvalidConfiguration, require_valid

logger = logging.getLogger("uvicorn.error")

_executor = ThreadPoolExecutor(max_workers=2)


class NoDataset(LookupError):
    """The operation needs a loaded dataset."""


class WorkspaceSession:
    def __init__(
        self,
        session_id: str,
        *,
        analysis_llm: Optional[BaseChatModel] = None,
        analysis_method: Optional[str] = None,
        chat_factory: SessionFactory = open_chat_session,
    ) -> None:
        self.session_id = session_id
        self.dataset: Optional[Dataset] = None
        self.config: Optional[ChartConfiguration] = None
        self.analysis: Optional[AnalysisResult] = None
        self.suggestions: List[SuggestionState] = []
        self.analyzing = False
        self.generation = 0
        self.conversation = ConversationContext(chat_factory)
        self.channel: Optional[SSEChannel] = None
        self._analysis_llm = analysis_llm
        self._analysis_method = analysis_method
        self._advisory_task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Dataset lifecycle
    # ------------------------------------------------------------------

    async def ingest(
        self,
        content: bytes,
        *,
        filename: str,
        content_type: Optional[str] = None,
    ) -> Dataset:
        """Decode off the event loop, then load. Raises IngestError."""
        loop = asyncio.get_running_loop()
        headers, rows = await loop.run_in_executor(
            _executor,
            lambda: parse_spreadsheet(content, filename=filename, content_type=content_type),
        )
        dataset = build_dataset(filename, headers, rows)
        await self.load_dataset(dataset)
        return dataset

    async def load_dataset(self, dataset: Dataset) -> None:
        """Replace the dataset wholesale and start the background consumers."""
        self.generation += 1
        generation = self.generation

        self.dataset = dataset
        self.config = derive_default_config(dataset)
        self.analysis = None
        self.suggestions = []
        self.conversation.open(dataset)

        logger.info(
            "Dataset '%s' loaded for session %s (generation=%d, default=%s)",
            dataset.name, self.session_id, generation,
            self.config.model_dump() if self.config else None,
        )
        await self._emit(WorkspaceEvent.dataset_loaded, {"summary": dataset_summary(dataset), **self._config_payload()})

        self.analyzing = True
        self._advisory_task = asyncio.create_task(self._reconcile(dataset, generation))

    async def clear(self) -> None:
        self.generation += 1
        self.dataset = None
        self.config = None
        self.analysis = None
        self.suggestions = []
        self.analyzing = False
        self.conversation.invalidate()
        logger.info("Session %s cleared (generation=%d)", self.session_id, self.generation)
        await self._emit(WorkspaceEvent.dataset_cleared, {})

    async def wait_for_analysis(self) -> None:
        """Await the in-flight advisory request, if any."""
        task = self._advisory_task
        if task is not None:
            await task

    # ------------------------------------------------------------------
    # Advisory reconciliation
    # ------------------------------------------------------------------

    async def _reconcile(self, dataset: Dataset, generation: int) -> None:
        result = await request_analysis(
            dataset, llm=self._analysis_llm, method=self._analysis_method
        )
        if generation != self.generation:
            logger.warning(
                "Discarding advisory result for '%s' (generation %d, now %d)",
                dataset.name, generation, self.generation,
            )
            return

        self.analyzing = False
        if result is None:
            await self._emit(WorkspaceEvent.analysis_unavailable, {})
            return

        self.analysis = result
        self.suggestions = rank_suggestions(result, dataset)
        chosen = first_applicable(self.suggestions)
        if chosen is not None:
            self.config = apply_suggestion(chosen.suggestion, self.config)
            logger.info("Applied suggestion %d '%s'", chosen.index, chosen.suggestion.title)
            await self._emit(WorkspaceEvent.config_updated, self._config_payload())
        await self._emit(WorkspaceEvent.analysis_ready, self.analysis_payload())

    # ------------------------------------------------------------------
    # Configuration edits (last write wins)
    # ------------------------------------------------------------------

    def _require_dataset(self) -> Dataset:
        if self.dataset is None:
            raise NoDataset("No dataset loaded.")
        return self.dataset

    async def update_config(self, update: ConfigUpdateRequest) -> ChartConfiguration:
        """Merge a manual edit into the live configuration. Raises InvalidConfiguration."""
        dataset = self._require_dataset()
        base = self.config.model_dump() if self.config is not None else {"theme_id": DEFAULT_THEME_ID}
        try:
            candidate = ChartConfiguration.model_validate({**base, **update.model_dump(exclude_none=True)})
        except ValidationError as e:
            raise InvalidConfiguration([err["msg"] for err in e.errors()]) from e
        self.config = require_valid(candidate, dataset)
        await self._emit(WorkspaceEvent.config_updated, self._config_payload())
        return self.config

    async def apply_suggestion(self, index: int) -> ChartConfiguration:
        """Replace the configuration with suggestion ``index``. Raises IndexError."""
        self._require_dataset()
        if not 0 <= index < len(self.suggestions):
            raise IndexError(f"No suggestion at index {index}.")
        state = self.suggestions[index]
        if not state.applicable:
            raise InvalidConfiguration(state.warnings)
        self.config = apply_suggestion(state.suggestion, self.config)
        await self._emit(WorkspaceEvent.config_updated, self._config_payload())
        return self.config

    def chart_spec(self) -> Optional[ChartSpec]:
        dataset = self._require_dataset()
        if self.config is None:
            return None
        return build_chart_spec(self.config, dataset)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def submit_chat(self, text: str) -> Optional[ConversationTurn]:
        self._require_dataset()
        reply = await self.conversation.submit(text)
        if reply is not None:
            await self._emit(WorkspaceEvent.chat_turn, reply.model_dump(mode="json"))
        return reply

    # ------------------------------------------------------------------
    # Events + payloads
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """End the event stream; the session is about to be dropped."""
        if self.channel is not None:
            await self.channel.close()
            self.channel = None

    async def subscribe(self) -> SSEChannel:
        """Open a fresh event channel; a previous subscriber is closed."""
        if self.channel is not None:
            await self.channel.close()
        self.channel = SSEChannel()
        return self.channel

    async def _emit(self, event: WorkspaceEvent, data: Any) -> None:
        if self.channel is not None and not self.channel.closed:
            await self.channel.emit(event, data, generation=self.generation)

    def _config_payload(self) -> Dict[str, Any]:
        return {"config": self.config.model_dump(mode="json") if self.config else None}

    def analysis_payload(self) -> Dict[str, Any]:
        return {
            "analyzing": self.analyzing,
            "summary": self.analysis.summary if self.analysis else None,
            "suggestions": [s.model_dump(mode="json") for s in self.suggestions],
        }

    def state(self) -> Dict[str, Any]:
        return {
            "dataset": dataset_summary(self.dataset) if self.dataset else None,
            **self._config_payload(),
            **self.analysis_payload(),
            "chat_available": self.conversation.available,
            "generation": self.generation,
        }


def get_workspace(session_id: str) -> WorkspaceSession:
    return get_session(session_id, WorkspaceSession)


async def end_workspace(session_id: str) -> None:
    """Clear the dataset, close the event stream and forget the session."""
    ws = get_workspace(session_id)
    await ws.clear()
    await ws.close()
    drop_session(session_id)
