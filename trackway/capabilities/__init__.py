"""Capabilities offered to the model and the registry that dispatches them."""

from .base import Capability, CapabilityResult, ResultKind
from .builtin import BUILTINS_PREFIX, EXIT_NAME, exit_declaration, is_builtin
from .registry import CapabilityRegistry

__all__ = [
    "BUILTINS_PREFIX",
    "Capability",
    "CapabilityRegistry",
    "CapabilityResult",
    "EXIT_NAME",
    "ResultKind",
    "exit_declaration",
    "is_builtin",
]
