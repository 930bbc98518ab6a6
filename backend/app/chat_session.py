"""
Dialogue session with the chat model.

The session owns the message history: it is seeded once with the system
instructions and grows by one human/AI pair per exchange.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from core.settings import CHAT_TEMPERATURE
from .llm import as_text
from .llm_loader import get_chat_model

logger = logging.getLogger("uvicorn.error")


class ChatSession:
    def __init__(self, llm: BaseChatModel, instructions: str) -> None:
        self._llm = llm
        self._history: List[BaseMessage] = [SystemMessage(instructions)]

    @property
    def history(self) -> List[BaseMessage]:
        return list(self._history)

    async def send(self, text: str) -> str:
        """
        Exchange one message. Raises whatever the transport raises; the
        history only grows when a reply arrives.
        """
        human = HumanMessage(text)
        resp = await self._llm.ainvoke(self._history + [human])
        reply = as_text(resp)
        self._history.extend([human, AIMessage(reply)])
        return reply


def open_chat_session(instructions: str, llm: Optional[BaseChatModel] = None) -> ChatSession:
    """Raises LLMConfigError when no chat model can be configured."""
    if llm is None:
        llm = get_chat_model(temperature=CHAT_TEMPERATURE)
    return ChatSession(llm, instructions)
