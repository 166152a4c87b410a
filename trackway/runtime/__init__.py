"""Conversation state machine driving an agent run."""

from .controller import AgentController
from .models import ActionRecord, AgentOptions, Exited, Pending, State

__all__ = [
    "ActionRecord",
    "AgentController",
    "AgentOptions",
    "Exited",
    "Pending",
    "State",
]
