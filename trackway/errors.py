"""Error types for the trackway agent engine.

The engine distinguishes four kinds of failure, and the conversation loop
branches on them:

- :class:`Feedback` is recoverable and addressed to the model. The text is fed
  back as a ``system`` message and the conversation continues.
  :class:`ProtocolError` and its subclasses are the feedback the engine raises
  itself when the model breaks the response contract.
- :class:`Interrupt` aborts the run without further correction attempts.
- :class:`Exit` is a successful termination carrying an optional payload.
- :class:`TrackwayRuntimeError` covers configuration and contract violations.
  These are never retried.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional


class TrackwayError(Exception):
    """Base error for all trackway exceptions."""


class Feedback(TrackwayError):
    """Recoverable error whose message is shown to the model.

    Capabilities raise this when the model called them incorrectly (bad
    arguments, a request the application refuses, ...). The message is sent
    back verbatim as the next ``system`` prompt.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ProtocolError(Feedback):
    """Feedback raised by the engine when a reply breaks the call contract.

    Unlike plain :class:`Feedback`, these are rendered through the template's
    ``render_error`` so the required response format is restated.
    """


class ResponseParseError(ProtocolError):
    """Raised when a model reply cannot be parsed into a structured call."""

    def __init__(self, text: str, reason: Optional[str] = None) -> None:
        message = "could not parse your answer as a function call"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(f"{message}, your answer was:\n{text}")
        self.text = text
        self.reason = reason


class UnknownCapabilityError(ProtocolError):
    """Raised when the model calls a name that is not offered."""

    def __init__(self, name: str, available: Iterable[str] = ()) -> None:
        names = sorted(available)
        message = f"unknown function '{name}'"
        if names:
            message = f"{message}, valid functions are: {', '.join(names)}"
        super().__init__(message)
        self.name = name
        self.available = names


class InvalidArgumentsError(ProtocolError):
    """Raised when positional arguments do not fit a capability's signature."""

    def __init__(self, name: str, detail: str) -> None:
        super().__init__(f"invalid arguments for '{name}': {detail}")
        self.name = name
        self.detail = detail


class Interrupt(TrackwayError):
    """Abort the run and hand control back to the caller.

    Args:
        reason: Optional human-readable reason.
        cause: Optional underlying exception. When set, ``run_to_completion``
            re-raises it (chained from this interrupt) instead of the interrupt.
    """

    def __init__(self, reason: Optional[str] = None, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(reason or (str(cause) if cause is not None else "interrupted"))
        self.reason = reason
        self.cause = cause


class Exit(TrackwayError):
    """Successful termination of a run, carrying an optional payload."""

    def __init__(self, value: Any = None) -> None:
        super().__init__("exit")
        self.value = value


class TrackwayRuntimeError(TrackwayError):
    """Internal or configuration error. Always fatal.

    Args:
        message: Human-readable error description.
        code: Process exit status used by the command line.
    """

    def __init__(self, message: str, *, code: int = 1) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class CompletionError(TrackwayRuntimeError):
    """Raised when the LLM transport fails or returns an unusable completion.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code returned by the provider.
        details: Optional raw error payload from the provider.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class DeclarationLoadError(TrackwayRuntimeError):
    """Raised when a declaration artifact cannot be produced or loaded."""
