from __future__ import annotations

"""Agent controller.

``AgentController`` drives one conversation between a program and an LLM.

Execution model
---------------

- Each ``tick`` sends exactly one message, parses the reply into a
  ``StructuredCall``, dispatches it and returns the next state.
- ``run_to_completion`` loops over ``tick`` until a tick returns ``Exited``.
  There is no turn limit; bounding the conversation is a caller concern.

Error branches
--------------

- Feedback (unparseable reply, unknown name, bad arguments, ``Feedback``
  raised by a capability) becomes the next ``system`` prompt. Engine protocol
  errors go through ``Template.render_error``; capability feedback is sent
  verbatim.
- Exit (``builtins.exit`` or ``Exit`` raised by a capability) ends the run
  with its payload.
- Interrupt propagates to the caller, re-raising the wrapped cause when there
  is one.
- Anything else is an internal error and propagates unchanged.
"""

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Generator, List, NoReturn, Optional, Tuple, Union

from pydantic_core import to_jsonable_python

from ..agent import AgentSource, build_registry
from ..capabilities.base import CapabilityResult, ResultKind
from ..capabilities.builtin import EXIT_NAME, exit_declaration, exit_signal, is_builtin
from ..capabilities.registry import CapabilityRegistry
from ..errors import (
    Feedback,
    Interrupt,
    InvalidArgumentsError,
    ProtocolError,
    ResponseParseError,
    TrackwayRuntimeError,
    UnknownCapabilityError,
)
from ..llm.base import ChatMessage, LLMClient
from ..prompts.graph import DeclarationGraph
from ..prompts.template import NaiveTemplate, StructuredCall, Template
from .models import ActionRecord, AgentOptions, Exited, Pending, State

logger = logging.getLogger(__name__)

STRINGIFIED_MAX_LENGTH = 76

GraphSource = Union[DeclarationGraph, Awaitable[DeclarationGraph]]


def _stringify(value: Any) -> str:
    text = json.dumps(to_jsonable_python(value, fallback=repr))
    if len(text) > STRINGIFIED_MAX_LENGTH:
        text = text[:STRINGIFIED_MAX_LENGTH].rstrip() + "..."
    return text


def _schedule(graph: Awaitable[DeclarationGraph]) -> Awaitable[DeclarationGraph]:
    """Start loading ``graph`` in the background when an event loop is running."""
    if not inspect.iscoroutine(graph):
        return graph
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return graph
    return loop.create_task(graph)


class AgentController:
    """Run the request/parse/dispatch loop for one agent.

    Args:
        agent: An ``Agent``, a ``CapabilityRegistry`` or an iterable of ``Capability``.
        graph: The declaration graph, or an awaitable resolving to it. A
            coroutine is scheduled immediately when an event loop is running
            and awaited before the first tick.
        llm: The client owning the message history.
        options: Per-run options (``allow_exit``).
        template: Prompt template. Defaults to ``NaiveTemplate``.
    """

    def __init__(
        self,
        agent: AgentSource,
        graph: GraphSource,
        llm: LLMClient,
        *,
        options: Optional[AgentOptions] = None,
        template: Optional[Template] = None,
    ) -> None:
        self._registry: CapabilityRegistry = build_registry(agent)
        self._llm = llm
        self._options = options or AgentOptions()
        self._template: Template = template or NaiveTemplate()
        self._history: List[ActionRecord] = []
        self._exited = False

        self._graph: Optional[DeclarationGraph] = None
        self._graph_loading: Optional[Awaitable[DeclarationGraph]] = None
        if isinstance(graph, DeclarationGraph):
            self._graph = graph
        else:
            self._graph_loading = _schedule(graph)

    # ---- accessors ----

    @property
    def registry(self) -> CapabilityRegistry:
        return self._registry

    @property
    def llm(self) -> LLMClient:
        return self._llm

    @property
    def options(self) -> AgentOptions:
        return self._options

    @property
    def template(self) -> Template:
        return self._template

    @property
    def history(self) -> Tuple[ActionRecord, ...]:
        return tuple(self._history)

    @property
    def exited(self) -> bool:
        return self._exited

    @property
    def graph(self) -> DeclarationGraph:
        if self._graph is None:
            raise TrackwayRuntimeError("declaration graph is not loaded yet, await ready() first")
        return self._graph

    async def ready(self) -> DeclarationGraph:
        """Wait for the declaration graph to be loaded."""
        if self._graph is None:
            if self._graph_loading is None:
                raise TrackwayRuntimeError("no declaration graph was provided")
            # kept until it succeeds, so a failed load re-raises on every call
            self._graph_loading = asyncio.ensure_future(self._graph_loading)
            self._graph = await self._graph_loading
            self._graph_loading = None
            logger.debug("AgentController.ready: declaration graph loaded with %d nodes", len(self._graph))
        return self._graph

    # ---- prompts ----

    def available_names(self) -> List[str]:
        names = self._registry.names()
        if self._options.allow_exit:
            names.append(EXIT_NAME)
        return names

    def render_context(self) -> str:
        """Render the full context for the capabilities offered in this run."""
        scope = self.graph.new_scope()
        self._registry.contribute(scope)
        if self._options.allow_exit:
            scope.add_node(exit_declaration())
        logger.debug("AgentController.render_context: scope holds %d declarations", len(scope))
        return self._template.render_context(scope)

    def next_prompt(self) -> str:
        """Derive the prompt for a ``Pending`` state that has none."""
        if not self._history:
            return self.render_context()
        return self._template.render_output(self._history[-1].output)

    # ---- state machine ----

    async def tick(self, pending: Optional[Pending] = None) -> State:
        """Run one request/parse/dispatch round.

        Returns:
            ``Pending`` for the next round, or ``Exited`` with the run output.

        Raises:
            Exception: The cause wrapped by an ``Interrupt`` (or the interrupt
                itself), any internal error, or ``TrackwayRuntimeError`` when
                the controller has already exited.
        """
        if self._exited:
            raise TrackwayRuntimeError("agent has already exited")
        await self.ready()

        pending = pending or Pending()
        prompt = pending.prompt if pending.prompt is not None else self.next_prompt()
        logger.debug("AgentController.tick: sending %s prompt (%d chars)", pending.role, len(prompt))

        try:
            reply = await self._llm.complete([ChatMessage(role=pending.role, content=prompt)])
        except Interrupt as err:
            self._raise_interrupt(err)

        try:
            call = self._template.parse_response(reply)
        except ResponseParseError as err:
            return self._on_feedback(err)

        if call.reasoning:
            logger.info("thought: %s", call.reasoning)
        logger.info("call: %s(%s)", call.name, ", ".join(_stringify(arg) for arg in call.arguments))

        result = await self._dispatch(call)
        return self._on_result(call, result)

    async def run_to_completion(self) -> Any:
        """Tick until the run exits and return its output."""
        await self.ready()
        state: State = Pending()
        while True:
            state = await self.tick(state)
            if isinstance(state, Exited):
                return state.output

    def __await__(self) -> Generator[Any, None, Any]:
        return self.run_to_completion().__await__()

    # ---- internals ----

    async def _dispatch(self, call: StructuredCall) -> CapabilityResult:
        if is_builtin(call.name):
            return self._dispatch_builtin(call)
        if not self._registry.has(call.name):
            return CapabilityResult.feedback(UnknownCapabilityError(call.name, self.available_names()))
        return await self._registry.dispatch(call)

    def _dispatch_builtin(self, call: StructuredCall) -> CapabilityResult:
        if call.name == EXIT_NAME and self._options.allow_exit:
            try:
                return CapabilityResult.exited(exit_signal(call.arguments))
            except InvalidArgumentsError as err:
                return CapabilityResult.feedback(err)
        return CapabilityResult.feedback(UnknownCapabilityError(call.name, self.available_names()))

    def _on_result(self, call: StructuredCall, result: CapabilityResult) -> State:
        if result.kind is ResultKind.ok:
            self._history.append(ActionRecord(call=call, output=result.output))
            logger.info("returns: %s", _stringify(result.output))
            return Pending()

        if result.kind is ResultKind.feedback:
            assert isinstance(result.error, Feedback)
            return self._on_feedback(result.error)

        if result.kind is ResultKind.exit:
            self._exited = True
            logger.info("exit: %s", _stringify(result.output))
            return Exited(output=result.output)

        assert isinstance(result.error, Interrupt)
        self._raise_interrupt(result.error)

    def _raise_interrupt(self, err: Interrupt) -> NoReturn:
        logger.warning("interrupt: %s", err)
        if err.cause is not None:
            raise err.cause from err
        raise err

    def _on_feedback(self, err: Feedback) -> Pending:
        logger.info("feedback: %s", err.message)
        if isinstance(err, ProtocolError):
            return Pending(role="system", prompt=self._template.render_error(err))
        return Pending(role="system", prompt=err.message)
