"""Prompt templates: how a scope is shown to the model and how replies are read.

A template is a pure strategy object. The controller uses it to:

- render the initial context from a :class:`Scope`,
- render a capability's return value as the next user message,
- render an engine error as corrective system feedback,
- parse the model's raw reply into a :class:`StructuredCall`.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import to_jsonable_python

from ..errors import Feedback, ResponseParseError
from .scope import Scope

_FENCED_BLOCK = re.compile(r"```[\w+-]*\s*(.*?)```", re.DOTALL)

RESPONSE_FORMAT = """{
   "name": "the name of the function you want to call",
   "reasoning": "the reasoning that you've used to arrive to the conclusion you should use this function",
   "arguments": [
        // ... the arguments of the function you want to call
   ]
}"""


def block_quote(text: str, language: str = "python") -> str:
    return f"```{language}\n{text}\n```"


class StructuredCall(BaseModel):
    """The model's choice of capability and positional arguments.

    ``reasoning`` is advisory: it is logged but never gates dispatch.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="External name of the capability to call")
    reasoning: Optional[str] = Field(default=None, description="Why the model chose this call")
    arguments: List[Any] = Field(default_factory=list, description="Positional JSON arguments")


@runtime_checkable
class Template(Protocol):
    """Protocol for prompt templates used by the agent controller."""

    def render_context(self, scope: Scope) -> str: ...

    def render_output(self, value: Any) -> str: ...

    def render_error(self, error: Feedback) -> str: ...

    def parse_response(self, text: str) -> StructuredCall: ...


class NaiveTemplate(Template):
    """Plain-text template asking for a bare JSON call object.

    Args:
        language: Code fence language used for the declarations block.
    """

    def __init__(self, *, language: str = "python") -> None:
        self._language = language

    def render_context(self, scope: Scope) -> str:
        flattened = "\n\n".join(node.fmt for node in scope.current() if node.renderable)

        return f"""You are the runtime of a program, you decide which functions to call.

Here is the abbreviated code of the program:

{block_quote(flattened, self._language)}

Each of your prompts must be of the following valid JSON form:

{RESPONSE_FORMAT}

You must make sure that the function you are calling accepts the arguments you give it.

Let's begin!"""

    def render_output(self, value: Any) -> str:
        return block_quote(json.dumps(to_jsonable_python(value)), "json")

    def render_error(self, error: Feedback) -> str:
        return f"""error: {error.message}.

Remember, your answers must be valid JSON objects, conforming to the following format (excluding the block quote):

{block_quote(RESPONSE_FORMAT, "json")}

Your answer must not include anything other than a valid JSON object."""

    def parse_response(self, text: str) -> StructuredCall:
        reason = "no JSON object found"
        for candidate in self._candidates(text):
            try:
                payload = json.loads(candidate)
            except json.JSONDecodeError as exc:
                reason = f"invalid JSON: {exc.msg}"
                continue
            if not isinstance(payload, dict):
                reason = "expected a JSON object"
                continue
            try:
                return StructuredCall.model_validate(payload)
            except ValidationError as exc:
                reason = "; ".join(f"{'.'.join(map(str, e['loc'])) or 'call'}: {e['msg']}" for e in exc.errors())
        raise ResponseParseError(text, reason)

    @staticmethod
    def _candidates(text: str) -> List[str]:
        candidates = [text.strip()]
        candidates.extend(match.strip() for match in _FENCED_BLOCK.findall(text))
        return candidates
