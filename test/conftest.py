from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import httpx
import pytest
from dotenv import load_dotenv

from trackway.llm.base import BaseChatCompletion, ChatMessage
from trackway.prompts.graph import DeclarationGraph

# Load dotenv files early so integration tests can read secrets via os.getenv
TEST_ROOT = Path(__file__).resolve().parent
load_dotenv(TEST_ROOT / ".env", override=False)


class ScriptedChatCompletion(BaseChatCompletion):
    """Chat completion client replaying canned replies and recording every request."""

    def __init__(self, replies: Sequence[str]) -> None:
        super().__init__()
        self._replies: List[str] = list(replies)
        self.requests: List[List[ChatMessage]] = []

    async def _send(self, messages: List[ChatMessage]) -> ChatMessage:
        self.requests.append(list(messages))
        if not self._replies:
            raise AssertionError("scripted client ran out of replies")
        return ChatMessage(role="assistant", content=self._replies.pop(0))

    @property
    def sent(self) -> List[ChatMessage]:
        """The new message of each request, in order."""
        return [request[-1] for request in self.requests]


HELLO_NODES: List[Dict[str, Any]] = [
    {"type": "ts", "ast_ty": "type_alias_decl", "fmt": "Info = dict[str, str]", "id": "Info#0"},
    {"type": "ts", "ast_ty": "class_decl", "fmt": "class HelloWorld:", "id": "HelloWorld#1"},
    {
        "type": "ts",
        "ast_ty": "method_decl",
        "fmt": "def ask(self, query: str) -> str: ...",
        "id": "HelloWorld#1.ask#2",
        "context": ["Info#0"],
    },
    {
        "type": "ts",
        "ast_ty": "method_decl",
        "fmt": "def echo(self, text: str) -> str: ...",
        "id": "HelloWorld#1.echo#3",
    },
    {
        "type": "ts",
        "ast_ty": "method_decl",
        "fmt": "def end(self, hello: str) -> None: ...",
        "id": "HelloWorld#1.end#4",
    },
    {"type": "plaintext", "ast_ty": "fn_decl", "fmt": "helper notes", "id": "notes#5"},
]


@pytest.fixture
def hello_nodes() -> List[Dict[str, Any]]:
    return [dict(node) for node in HELLO_NODES]


@pytest.fixture
def hello_graph(hello_nodes: List[Dict[str, Any]]) -> DeclarationGraph:
    return DeclarationGraph.from_payload({"ast": hello_nodes})


@pytest.fixture
def scripted_llm():
    """Factory fixture: ``scripted_llm(reply, ...)`` returns a ``ScriptedChatCompletion``."""

    def _make(*replies: str) -> ScriptedChatCompletion:
        return ScriptedChatCompletion(replies)

    return _make


@pytest.fixture(autouse=True)
def _isolated_config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    config_dir = tmp_path / "trackway-config"
    monkeypatch.setenv("TRACKWAY_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture(autouse=True)
def _global_offline_http_guard(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch):
    if request.node.get_closest_marker("integration") is not None:
        return
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
