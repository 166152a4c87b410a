from __future__ import annotations

"""Conversation states and action history for the agent controller.

The controller is a two-state machine:

- ``Pending`` describes the next message to send. A ``None`` prompt means
  "derive it": the rendered context before any action, otherwise the rendered
  output of the last action.
- ``Exited`` is terminal and carries the run's output.

``ActionRecord`` entries are appended once per successful call and are never
pruned.
"""

from dataclasses import dataclass
from typing import Any, List, Literal, Optional, Union

from ..prompts.template import StructuredCall

PromptRole = Literal["user", "system"]


@dataclass(frozen=True)
class Pending:
    role: PromptRole = "user"
    prompt: Optional[str] = None


@dataclass(frozen=True)
class Exited:
    output: Any = None


State = Union[Pending, Exited]


@dataclass
class ActionRecord:
    """One successful call made by the model, with the value it returned."""

    call: StructuredCall
    output: Any = None

    @property
    def called_name(self) -> str:
        return self.call.name

    @property
    def arguments(self) -> List[Any]:
        return self.call.arguments


@dataclass(frozen=True)
class AgentOptions:
    """Per-run controller options.

    Attributes
    ----------
    allow_exit:
        Offer ``builtins.exit`` so the model can end the run by itself.
    """

    allow_exit: bool = True
