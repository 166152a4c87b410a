from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import CompletionError, TrackwayRuntimeError
from .base import BaseChatCompletion, ChatMessage

if TYPE_CHECKING:
    from ..core.config import Settings

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"


class ChatCompletionRequestDTO(BaseModel):
    model: str
    messages: List[ChatMessage]


class _ReplyMessageDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str = "assistant"
    content: Optional[str] = None


class _ChoiceDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int = 0
    message: Optional[_ReplyMessageDTO] = None


class ChatCompletionResponseDTO(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[_ChoiceDTO] = Field(default_factory=list)


class OpenAIChatCompletion(BaseChatCompletion):
    """
    Thin HTTP client for the OpenAI chat completions API.

    Responsibilities:
    - keep the conversation history (see ``BaseChatCompletion``)
    - POST ``{model, messages}`` to ``<base_url>/chat/completions``
    - map HTTP and transport failures to ``CompletionError``

    Note: the client only closes an ``httpx.AsyncClient`` it created itself.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__()
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings, *, client: Optional[httpx.AsyncClient] = None) -> "OpenAIChatCompletion":
        """Build a client from ``Settings``.

        Raises:
            TrackwayRuntimeError: If no OpenAI key is configured.
        """
        cfg = settings.openai
        if not cfg.key:
            raise TrackwayRuntimeError(
                "openai.key is not set\n\ntry running:\n\n    trackway config openai.key KEY"
            )
        return cls(cfg.key, model=cfg.model, base_url=cfg.base_url, timeout=cfg.timeout, client=client)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _send(self, messages: List[ChatMessage]) -> ChatMessage:
        req = ChatCompletionRequestDTO(model=self.model, messages=messages)
        url = f"{self.base_url}/chat/completions"
        try:
            self._logger.debug(
                "OpenAIChatCompletion._send: POST %s model=%s messages=%d", url, self.model, len(messages)
            )
            r = await self._client.post(url, headers=self._headers(), json=req.model_dump(mode="json"))
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CompletionError(
                f"openai: {self._error_message(e.response)}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise CompletionError(f"openai: request failed: {e}") from e

        try:
            resp = ChatCompletionResponseDTO.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise CompletionError("openai: unexpected response shape", status_code=r.status_code, details=r.text) from e

        if not resp.choices or resp.choices[0].message is None:
            raise CompletionError("Didn't receive a completion", status_code=r.status_code, details=r.text)

        reply = resp.choices[0].message
        self._logger.debug("OpenAIChatCompletion._send: got %d choice(s) from model=%s", len(resp.choices), resp.model)
        return ChatMessage(role="assistant", content=reply.content or "")

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data: Any = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            message = data["error"].get("message")
            if message:
                return str(message)
        return f"HTTP {response.status_code}"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "OpenAIChatCompletion":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
