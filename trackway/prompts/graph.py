"""Read-only declaration graph loaded from a compiler artifact.

The graph is the full set of declarations extracted from an agent's source
file. It is loaded once per run and queried by :class:`Scope` through
:meth:`DeclarationGraph.find`.

Artifact shape (``<stem>.prompts.json``)::

    {"ast": [{"type": "ts", "ast_ty": "fn_decl", "fmt": "...", "id": "greet#0"}, ...]}

A bare JSON list of nodes is accepted as well.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from ..errors import DeclarationLoadError
from .models import DeclarationNode
from .scope import Scope

logger = logging.getLogger(__name__)

_REGEX_META = frozenset(".^$*+?{}[]\\|()")

_NODES_ADAPTER: TypeAdapter[List[DeclarationNode]] = TypeAdapter(List[DeclarationNode])

PROMPTS_SUFFIX = ".prompts.json"


def _is_literal(pattern: str) -> bool:
    return not any(ch in _REGEX_META for ch in pattern)


def artifact_name(source: Union[str, Path]) -> str:
    """Return the artifact file name the compiler writes for ``source``."""
    return f"{Path(source).name.split('.')[0]}{PROMPTS_SUFFIX}"


class DeclarationGraph:
    """Immutable collection of :class:`DeclarationNode` indexed by id and kind."""

    def __init__(self, nodes: Iterable[DeclarationNode]) -> None:
        self._nodes: Tuple[DeclarationNode, ...] = tuple(nodes)
        self._by_id: Dict[str, DeclarationNode] = {}
        self._by_kind: Dict[str, List[DeclarationNode]] = {}
        for node in self._nodes:
            if node.id in self._by_id:
                raise DeclarationLoadError(f"duplicate declaration id: {node.id}")
            self._by_id[node.id] = node
            if node.kind is not None:
                self._by_kind.setdefault(node.kind, []).append(node)

    # ---- construction ----

    @classmethod
    def from_nodes(cls, nodes: Iterable[Union[DeclarationNode, Dict[str, Any]]]) -> "DeclarationGraph":
        items = list(nodes)
        if all(isinstance(n, DeclarationNode) for n in items):
            return cls(items)  # type: ignore[arg-type]
        return cls.from_payload(items)

    @classmethod
    def from_payload(cls, payload: Any) -> "DeclarationGraph":
        """Build a graph from decoded artifact data (``{"ast": [...]}`` or a list of nodes)."""
        raw = payload.get("ast") if isinstance(payload, dict) else payload
        if raw is None:
            raise DeclarationLoadError("declaration artifact has no 'ast' collection")
        try:
            nodes = _NODES_ADAPTER.validate_python(raw)
        except ValidationError as exc:
            raise DeclarationLoadError(f"invalid declaration artifact: {exc}") from exc
        return cls(nodes)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "DeclarationGraph":
        path = Path(path)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise DeclarationLoadError(f"declaration artifact not found: {path}") from exc
        except json.JSONDecodeError as exc:
            raise DeclarationLoadError(f"declaration artifact {path} is not valid JSON: {exc}") from exc
        graph = cls.from_payload(payload)
        logger.debug("DeclarationGraph.from_json_file: loaded %d nodes from %s", len(graph), path)
        return graph

    @classmethod
    def from_module(cls, module: ModuleType) -> "DeclarationGraph":
        """Build a graph from a module exposing an ``ast`` attribute."""
        if not hasattr(module, "ast"):
            raise DeclarationLoadError(f"module {module.__name__} does not expose an 'ast' collection")
        return cls.from_payload({"ast": getattr(module, "ast")})

    @classmethod
    async def build(
        cls,
        source: Union[str, Path],
        *,
        work_dir: Union[str, Path],
        executable: str = "kottoc",
    ) -> "DeclarationGraph":
        """Run the external compiler on ``source`` and load the artifact it writes.

        The compiler is invoked as ``<executable> -o=<work_dir> <source>`` and is
        expected to write ``<stem>.prompts.json`` into ``work_dir``.
        """
        work_dir = Path(work_dir)
        logger.debug("DeclarationGraph.build: running %s on %s (output: %s)", executable, source, work_dir)
        try:
            proc = await asyncio.create_subprocess_exec(executable, f"-o={work_dir}", str(source))
        except FileNotFoundError as exc:
            raise DeclarationLoadError(
                f"declaration compiler '{executable}' was not found, is it installed and on PATH?"
            ) from exc
        status = await proc.wait()
        if status != 0:
            raise DeclarationLoadError(f"failed to generate declarations for {source} (exit status {status})")
        return cls.from_json_file(work_dir / artifact_name(source))

    # ---- queries ----

    @property
    def nodes(self) -> Tuple[DeclarationNode, ...]:
        return self._nodes

    def get(self, node_id: str) -> Optional[DeclarationNode]:
        return self._by_id.get(node_id)

    def find(self, kind: str, *segments: str) -> List[DeclarationNode]:
        """Return nodes whose kind matches ``kind`` and whose id matches the segments.

        ``kind`` and each segment are regular expressions anchored on both
        ends; segments are joined with a literal ``.``. When every pattern is
        a plain identifier the lookup is a dictionary hit.
        """
        if not segments:
            return []
        if _is_literal(kind) and all(_is_literal(s) for s in segments):
            node = self._by_id.get(".".join(segments))
            return [node] if node is not None and node.kind == kind else []

        id_pattern = re.compile(r"\.".join(segments))
        if _is_literal(kind):
            candidates: Iterable[DeclarationNode] = self._by_kind.get(kind, [])
            return [n for n in candidates if id_pattern.fullmatch(n.id)]

        kind_pattern = re.compile(kind)
        return [
            n
            for n in self._nodes
            if n.kind is not None and kind_pattern.fullmatch(n.kind) and id_pattern.fullmatch(n.id)
        ]

    def new_scope(self) -> Scope:
        return Scope(self)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._by_id
