"""trackway.

Let your code chat with LLMs: a program declares the operations it offers,
and an LLM decides which of them to call, in what order and with which
arguments, until it ends the run.

High-level architecture
-----------------------

- ``trackway.prompts``: the declaration graph loaded from the compiler
  artifact, dependency-closed scopes, and the prompt template that renders
  them and parses the model's replies.
- ``trackway.capabilities``: capability descriptors, the registry that
  dispatches structured calls, and the ``builtins.exit`` pseudo-capability.
- ``trackway.llm``: the history-keeping chat completion client and its
  OpenAI implementation.
- ``trackway.runtime``: ``AgentController``, the conversation state machine.
- ``trackway.core``: settings, the persisted user config and logging setup.
- ``trackway.cli``: the ``trackway`` command.

Quick example::

    from trackway import Agent, AgentController, DeclarationGraph, Exit
    from trackway.llm import OpenAIChatCompletion

    class HelloWorld(Agent):
        exports = ("ask", "end")

        def ask(self, query: str) -> str:
            return input(query)

        def end(self, hello: str) -> None:
            raise Exit(hello)

    graph = DeclarationGraph.from_json_file("hello.prompts.json")
    result = await AgentController(HelloWorld(), graph, OpenAIChatCompletion(key))
"""

__version__ = "0.1.0"

from .agent import Agent, AgentSource, build_registry, capability
from .capabilities import Capability, CapabilityRegistry, CapabilityResult, ResultKind
from .errors import (
    CompletionError,
    DeclarationLoadError,
    Exit,
    Feedback,
    Interrupt,
    InvalidArgumentsError,
    ProtocolError,
    ResponseParseError,
    TrackwayError,
    TrackwayRuntimeError,
    UnknownCapabilityError,
)
from .prompts import DeclarationGraph, DeclarationNode, NaiveTemplate, Scope, StructuredCall, Template
from .runtime import ActionRecord, AgentController, AgentOptions, Exited, Pending

__all__ = [
    "ActionRecord",
    "Agent",
    "AgentController",
    "AgentOptions",
    "AgentSource",
    "Capability",
    "CapabilityRegistry",
    "CapabilityResult",
    "CompletionError",
    "DeclarationGraph",
    "DeclarationLoadError",
    "DeclarationNode",
    "Exit",
    "Exited",
    "Feedback",
    "Interrupt",
    "InvalidArgumentsError",
    "NaiveTemplate",
    "Pending",
    "ProtocolError",
    "ResponseParseError",
    "ResultKind",
    "Scope",
    "StructuredCall",
    "Template",
    "TrackwayError",
    "TrackwayRuntimeError",
    "UnknownCapabilityError",
    "build_registry",
    "capability",
    "__version__",
]
