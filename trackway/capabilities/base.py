from __future__ import annotations

"""Capability descriptor and dispatch result types.

A capability is an operation offered to the model. The controller resolves
``StructuredCall.name`` through a ``CapabilityRegistry`` and invokes the
descriptor with the call's positional arguments.

Capabilities should:

- validate their own arguments and raise ``Feedback`` (not arbitrary errors)
  when the model got them wrong,
- return JSON-serializable values,
- describe themselves by contributing declarations to a ``Scope``.

``Capability.from_callable`` covers the common case of wrapping a plain
function or bound method: arguments are bound positionally and validated
against the type annotations with pydantic.
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple, get_type_hints

from pydantic import TypeAdapter, ValidationError

from ..errors import Exit, Feedback, Interrupt, InvalidArgumentsError
from ..prompts.scope import Scope

logger = logging.getLogger(__name__)

Invoke = Callable[[Sequence[Any]], Awaitable[Any]]
Contribute = Callable[[Scope], None]

_POSITIONAL_KINDS = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


class ResultKind(str, Enum):
    ok = "ok"
    feedback = "feedback"
    exit = "exit"
    interrupt = "interrupt"


@dataclass(frozen=True)
class CapabilityResult:
    """Tagged outcome of dispatching one structured call.

    Attributes
    ----------
    kind:
        Which branch of the conversation state machine applies.
    output:
        The return value for ``ok`` and the exit payload for ``exit``.
    error:
        The ``Feedback``, ``Exit`` or ``Interrupt`` that produced a non-``ok`` result.
    """

    kind: ResultKind
    output: Any = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, output: Any) -> CapabilityResult:
        return cls(kind=ResultKind.ok, output=output)

    @classmethod
    def feedback(cls, error: Feedback) -> CapabilityResult:
        return cls(kind=ResultKind.feedback, error=error)

    @classmethod
    def exited(cls, error: Exit) -> CapabilityResult:
        return cls(kind=ResultKind.exit, output=error.value, error=error)

    @classmethod
    def interrupted(cls, error: Interrupt) -> CapabilityResult:
        return cls(kind=ResultKind.interrupt, error=error)

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.ok


def _contribute_nothing(scope: Scope) -> None:  # noqa: ARG001
    return None


@dataclass(frozen=True)
class Capability:
    """Descriptor of one externally visible operation.

    Attributes
    ----------
    name:
        The name the model uses to call the capability.
    invoke:
        Async callable receiving the positional JSON arguments.
    contribute:
        Adds the declarations describing this capability to a scope.
    description:
        Optional one-line summary, used for logging only.
    """

    name: str
    invoke: Invoke
    contribute: Contribute = _contribute_nothing
    description: Optional[str] = None

    @classmethod
    def from_callable(
        cls,
        fn: Callable[..., Any],
        *,
        name: Optional[str] = None,
        kind: Optional[str] = None,
        path: Optional[Sequence[str]] = None,
        description: Optional[str] = None,
    ) -> Capability:
        """Wrap a function or bound method as a capability.

        Args:
            fn: Sync or async callable. Annotated parameters are validated.
            name: External name. Defaults to ``fn.__name__``.
            kind: Declaration kind to contribute. Defaults to ``method_decl`` for
                bound methods and ``fn_decl`` otherwise.
            path: Identifier segments of the declaration, without uniqueness
                suffixes. Defaults to the callable's qualified name.
            description: Optional summary. Defaults to the first docstring line.
        """
        external_name = name or fn.__name__
        binder = _ArgumentBinder(external_name, fn)
        decl_kind = kind or ("method_decl" if inspect.ismethod(fn) else "fn_decl")
        decl_path = tuple(path) if path is not None else _qualified_path(fn)

        async def invoke(arguments: Sequence[Any]) -> Any:
            args, kwargs = binder.bind(arguments)
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

        def contribute(scope: Scope) -> None:
            scope.add_by_pattern(decl_kind, *(Scope.ident(segment) for segment in decl_path))

        if description is None:
            doc = inspect.getdoc(fn)
            description = doc.splitlines()[0] if doc else None

        logger.debug("Capability.from_callable: name=%s kind=%s path=%s", external_name, decl_kind, ".".join(decl_path))

        return cls(name=external_name, invoke=invoke, contribute=contribute, description=description)


def _qualified_path(fn: Callable[..., Any]) -> Tuple[str, ...]:
    qualname = getattr(fn, "__qualname__", fn.__name__)
    return tuple(qualname.rsplit("<locals>.", 1)[-1].split("."))


class _ArgumentBinder:
    """Bind positional JSON arguments to a signature and validate annotated parameters."""

    def __init__(self, name: str, fn: Callable[..., Any]) -> None:
        self._name = name
        self._signature = inspect.signature(fn)
        hints = get_type_hints(fn)
        self._adapters: Dict[str, TypeAdapter[Any]] = {
            param.name: TypeAdapter(hints[param.name])
            for param in self._signature.parameters.values()
            if param.kind in _POSITIONAL_KINDS and param.name in hints
        }

    def bind(self, arguments: Sequence[Any]) -> Tuple[Tuple[Any, ...], Dict[str, Any]]:
        try:
            bound = self._signature.bind(*arguments)
        except TypeError as exc:
            raise InvalidArgumentsError(self._name, str(exc)) from exc

        for param_name, adapter in self._adapters.items():
            if param_name not in bound.arguments:
                continue
            try:
                bound.arguments[param_name] = adapter.validate_python(bound.arguments[param_name])
            except ValidationError as exc:
                detail = "; ".join(f"{param_name}: {e['msg']}" for e in exc.errors())
                raise InvalidArgumentsError(self._name, detail) from exc
        return bound.args, bound.kwargs
