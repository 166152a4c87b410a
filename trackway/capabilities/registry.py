from __future__ import annotations

"""Capability registry.

The registry maps the external name the model uses to a ``Capability``
descriptor. It is built once when an agent is constructed and does not change
during a run.

The controller uses it to:

- let every capability contribute its declarations to the turn's scope,
- resolve and invoke a parsed ``StructuredCall`` (``dispatch``).

Names in the reserved ``builtins.`` namespace cannot be registered; the
controller handles those itself.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from ..errors import Exit, Feedback, Interrupt, UnknownCapabilityError
from ..prompts.scope import Scope
from ..prompts.template import StructuredCall
from .base import Capability, CapabilityResult
from .builtin import is_builtin

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """
    In-memory mapping of external capability names to descriptors.

    Notes:
        - ``register`` rejects duplicate names and the reserved ``builtins.`` namespace.
        - ``get`` will raise ``KeyError`` if the capability is missing; ``lookup`` returns ``None``.
        - Registration order is preserved and drives the order of contributed declarations.
    """

    def __init__(self, capabilities: Iterable[Capability] = ()) -> None:
        """Initialize a registry, optionally pre-populated with ``capabilities``."""
        self._caps: Dict[str, Capability] = {}
        for cap in capabilities:
            self.register(cap)

    def register(self, cap: Capability) -> None:
        """
        Register a capability descriptor.

        Args:
            cap: The descriptor to register. Its ``name`` is the external name.

        Raises:
            ValueError: If the name is reserved or already registered.
        """
        if is_builtin(cap.name):
            raise ValueError(f"capability name '{cap.name}' is in the reserved builtins namespace")
        if cap.name in self._caps:
            raise ValueError(f"capability '{cap.name}' is already registered")
        self._caps[cap.name] = cap
        logger.debug("CapabilityRegistry.register: name=%s description=%s", cap.name, cap.description)

    def lookup(self, name: str) -> Optional[Capability]:
        """Return the capability registered as ``name``, or ``None``."""
        return self._caps.get(name)

    def get(self, name: str) -> Capability:
        """
        Retrieve a registered capability by name.

        Raises:
            KeyError: If no capability is registered with the given name.
        """
        return self._caps[name]

    def has(self, name: str) -> bool:
        return name in self._caps

    def names(self) -> List[str]:
        return list(self._caps)

    def contribute(self, scope: Scope) -> None:
        """Let every registered capability add its declarations to ``scope``."""
        for cap in self._caps.values():
            cap.contribute(scope)

    async def dispatch(self, call: StructuredCall) -> CapabilityResult:
        """
        Resolve ``call.name`` and invoke the capability with ``call.arguments``.

        Feedback, exit and interrupt signals raised by the capability are turned
        into the matching ``CapabilityResult``. Any other exception is an
        internal error and propagates.

        Returns:
            CapabilityResult: ``ok`` with the return value, or the signal that ended the call.
        """
        cap = self.lookup(call.name)
        if cap is None:
            logger.debug("CapabilityRegistry.dispatch: unknown capability name=%s", call.name)
            return CapabilityResult.feedback(UnknownCapabilityError(call.name, self.names()))

        try:
            output = await cap.invoke(call.arguments)
        except Feedback as err:
            return CapabilityResult.feedback(err)
        except Exit as err:
            return CapabilityResult.exited(err)
        except Interrupt as err:
            return CapabilityResult.interrupted(err)
        return CapabilityResult.success(output)

    def __contains__(self, name: object) -> bool:
        return name in self._caps

    def __len__(self) -> int:
        return len(self._caps)

    def __iter__(self) -> Iterator[Capability]:
        return iter(list(self._caps.values()))
