"""Agent authoring API.

Agents declare the operations they offer to the model explicitly, either by
subclassing :class:`Agent` and listing method names in ``exports``::

    class HelloWorld(Agent):
        exports = ("ask", "end")

        def ask(self, query: str) -> str:
            return input(query)

        def end(self, hello: str) -> None:
            raise Exit(hello)

or by handing a list of :class:`Capability` objects (see :func:`capability`)
to the controller. Either way the result is a :class:`CapabilityRegistry`
built once at construction time.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, ClassVar, Iterable, List, Optional, Sequence, Union

from .capabilities.base import Capability
from .capabilities.registry import CapabilityRegistry

logger = logging.getLogger(__name__)

AgentSource = Union["Agent", CapabilityRegistry, Iterable[Capability]]


class Agent:
    """Base class for agents exposing methods as capabilities.

    Attributes:
        exports: Names of the methods offered to the model.
        description: Optional description of what the agent does.
    """

    exports: ClassVar[Sequence[str]] = ()
    description: ClassVar[Optional[str]] = None

    def capabilities(self) -> List[Capability]:
        """Build one capability per exported method.

        Each capability contributes the ``method_decl`` declaration of
        ``<ClassName>.<method>`` (and its dependencies) to the scope.

        Raises:
            TypeError: If an exported name is missing or not callable.
        """
        class_name = type(self).__name__
        caps: List[Capability] = []
        for export in self.exports:
            method = getattr(self, export, None)
            if method is None or not callable(method):
                raise TypeError(f"{class_name}.exports lists '{export}', which is not a method of the agent")
            caps.append(Capability.from_callable(method, name=export, kind="method_decl", path=(class_name, export)))
        return caps


def capability(
    fn: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    kind: Optional[str] = None,
    path: Optional[Sequence[str]] = None,
) -> Any:
    """Build a :class:`Capability` from a plain function.

    Can be called directly (``capability(fn)``) or with options only, in
    which case it returns a builder (``capability(name="greet")(fn)``).
    """

    def build(target: Callable[..., Any]) -> Capability:
        return Capability.from_callable(target, name=name, kind=kind, path=path)

    if fn is None:
        return build
    return build(fn)


def build_registry(source: AgentSource) -> CapabilityRegistry:
    """Return a registry for an :class:`Agent`, a registry, or an iterable of capabilities."""
    if isinstance(source, CapabilityRegistry):
        return source
    if isinstance(source, Agent):
        logger.debug("build_registry: agent=%s description=%s", type(source).__name__, source.description)
        return CapabilityRegistry(source.capabilities())
    return CapabilityRegistry(source)
