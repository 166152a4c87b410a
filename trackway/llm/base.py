"""LLM client abstraction and message history.

An LLM client owns the ordered history of one conversation. ``complete``
appends the new messages, requests a single completion over the whole
history, appends the reply and returns its text. The history is never pruned;
callers that need a bounded context must truncate before calling.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Protocol, Sequence, Tuple, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from ..errors import CompletionError

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """One message of the conversation history."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    role: Role = Field(..., description="Author of the message")
    content: str = Field(default="", description="Message text")


@runtime_checkable
class LLMClient(Protocol):
    """Protocol for chat-completion clients driven by the agent controller."""

    @property
    def messages(self) -> Sequence[ChatMessage]: ...

    async def complete(self, messages: Sequence[ChatMessage]) -> str: ...


class BaseChatCompletion(LLMClient):
    """History-keeping base for chat-completion clients.

    Subclasses implement :meth:`_send`, which receives the full history plus
    the new messages and returns the model's reply. The history only grows
    when a completion succeeds.
    """

    def __init__(self) -> None:
        self._messages: List[ChatMessage] = []

    @property
    def messages(self) -> Tuple[ChatMessage, ...]:
        return tuple(self._messages)

    async def complete(self, messages: Sequence[ChatMessage]) -> str:
        """Send ``messages`` after the current history and return the reply text.

        Raises:
            CompletionError: If the transport fails or the reply has no content.
        """
        new = list(messages)
        reply = await self._send(self._messages + new)
        if not reply.content:
            raise CompletionError("Completion has empty content")
        self._messages.extend(new)
        self._messages.append(reply)
        logger.debug("%s.complete: history now holds %d messages", type(self).__name__, len(self._messages))
        return reply.content

    async def _send(self, messages: List[ChatMessage]) -> ChatMessage:
        raise NotImplementedError
