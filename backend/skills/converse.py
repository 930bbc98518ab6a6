"""
Conversation skill: one dialogue session per dataset.

The chat session holds the prior-turn history sent to the model; this
module only keeps the visible turn list and guards against replies that
arrive after the dataset was replaced.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from app.chat_session import ChatSession, open_chat_session
from app.llm import short_error
from app.llm_loader import LLMConfigError
from app.prompts import build_chat_instructions
from core.messages import message
from core.models import ConversationRole, ConversationTurn, Dataset
from core.settings import CHAT_SAMPLE_ROWS
from skills.normalize import sample_rows

logger = logging.getLogger("uvicorn.error")

SessionFactory = Callable[[str], ChatSession]


class ConversationContext:
    def __init__(self, session_factory: SessionFactory = open_chat_session) -> None:
        self._factory = session_factory
        self._session: Optional[ChatSession] = None
        self._turns: List[ConversationTurn] = []
        self._dataset_name: Optional[str] = None

    @property
    def turns(self) -> List[ConversationTurn]:
        return list(self._turns)

    @property
    def dataset_name(self) -> Optional[str]:
        return self._dataset_name

    @property
    def available(self) -> bool:
        return self._session is not None

    def open(self, dataset: Dataset) -> None:
        """Replace any previous session with one seeded for ``dataset``."""
        self.invalidate()
        instructions = build_chat_instructions(
            dataset.name, dataset.headers, sample_rows(dataset, CHAT_SAMPLE_ROWS)
        )
        try:
            self._session = self._factory(instructions)
        except LLMConfigError as e:
            logger.warning("Chat session unavailable for '%s': %s", dataset.name, e)
            self._session = None
        except Exception as e:
            logger.warning("Could not open chat session for '%s': %s", dataset.name, short_error(e))
            self._session = None
        self._dataset_name = dataset.name
        logger.info("Conversation opened for '%s' (available=%s)", dataset.name, self.available)

    def invalidate(self) -> None:
        if self._dataset_name is not None:
            logger.info("Conversation for '%s' invalidated", self._dataset_name)
        self._session = None
        self._turns = []
        self._dataset_name = None

    async def submit(self, text: str) -> Optional[ConversationTurn]:
        """
        Append the user turn, exchange it once, append the assistant turn.

        Transport failures become an assistant turn with the localized error
        text. Returns the assistant turn, or None when the session was
        replaced while the reply was pending.
        """
        session = self._session
        turns = self._turns
        turns.append(ConversationTurn(role=ConversationRole.user, text=text))

        if session is None:
            reply = ConversationTurn(role=ConversationRole.assistant, text=message("chat_unavailable"))
            turns.append(reply)
            return reply

        try:
            answer = await session.send(text)
            reply_text = answer if answer and answer.strip() else message("chat_empty_reply")
        except Exception as e:
            logger.warning("Chat turn failed: %s", short_error(e))
            reply_text = message("chat_error")

        if self._session is not session:
            logger.warning("Discarding chat reply for a replaced dataset session")
            return None

        reply = ConversationTurn(role=ConversationRole.assistant, text=reply_text)
        turns.append(reply)
        return reply
