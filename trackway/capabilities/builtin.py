from __future__ import annotations

"""Builtin pseudo-capabilities.

Builtins live in the reserved ``builtins.`` namespace. They are not stored in
a ``CapabilityRegistry``: the controller dispatches them itself and injects
their declarations into the scope directly, since they have no declaration in
the agent's source.

Only ``builtins.exit`` exists. It is offered when the agent options allow the
model to end the run by itself, and takes zero or one argument (the payload
returned to the caller).
"""

from typing import Any, Sequence

from ..errors import Exit, InvalidArgumentsError
from ..prompts.models import AstType, DeclarationNode, NodeType

BUILTINS_PREFIX = "builtins."
EXIT_NAME = f"{BUILTINS_PREFIX}exit"

_EXIT_FMT = '''class builtins:
    @staticmethod
    def exit(value: Any = None) -> NoReturn:
        """End the program once the task is complete.

        `value` is returned to the caller of the program. It is optional.
        """'''


def is_builtin(name: str) -> bool:
    return name.startswith(BUILTINS_PREFIX)


def exit_declaration() -> DeclarationNode:
    """Return the synthetic declaration describing ``builtins.exit``."""
    return DeclarationNode(type=NodeType.ts, ast_ty=AstType.fn_decl, id=EXIT_NAME, fmt=_EXIT_FMT)


def exit_signal(arguments: Sequence[Any]) -> Exit:
    """Build the ``Exit`` signal for a ``builtins.exit`` call.

    Raises:
        InvalidArgumentsError: If more than one argument was given.
    """
    if len(arguments) > 1:
        raise InvalidArgumentsError(EXIT_NAME, f"takes at most 1 argument ({len(arguments)} given)")
    return Exit(arguments[0] if arguments else None)
