from __future__ import annotations

import logging

import pytest

from trackway.capabilities.base import Capability, ResultKind
from trackway.capabilities.registry import CapabilityRegistry
from trackway.errors import Exit, Feedback, Interrupt, UnknownCapabilityError
from trackway.prompts.graph import DeclarationGraph
from trackway.prompts.template import StructuredCall


def _cap(name: str, fn=None) -> Capability:
    def default(*args):
        return list(args)

    return Capability.from_callable(fn or default, name=name, kind="method_decl", path=("HelloWorld", name))


def test_registry_empty_has_false() -> None:
    reg = CapabilityRegistry()
    assert reg.has("ask") is False
    assert len(reg) == 0


def test_registry_get_missing_raises_keyerror() -> None:
    reg = CapabilityRegistry()
    with pytest.raises(KeyError):
        reg.get("ask")
    assert reg.lookup("ask") is None


def test_registry_register_then_get_returns_same_instance() -> None:
    reg = CapabilityRegistry()
    cap = _cap("ask")
    reg.register(cap)

    assert reg.has("ask") is True
    assert "ask" in reg
    assert reg.get("ask") is cap
    assert reg.lookup("ask") is cap


def test_registry_rejects_duplicate_names() -> None:
    reg = CapabilityRegistry([_cap("ask")])
    with pytest.raises(ValueError, match="already registered"):
        reg.register(_cap("ask"))


def test_registry_rejects_builtins_namespace() -> None:
    with pytest.raises(ValueError, match="reserved builtins namespace"):
        CapabilityRegistry([_cap("builtins.exit")])


def test_registry_preserves_registration_order() -> None:
    reg = CapabilityRegistry([_cap("end"), _cap("ask"), _cap("echo")])

    assert reg.names() == ["end", "ask", "echo"]
    assert [c.name for c in reg] == ["end", "ask", "echo"]


def test_contribute_follows_registration_order(hello_graph: DeclarationGraph) -> None:
    reg = CapabilityRegistry([_cap("end"), _cap("ask")])
    scope = hello_graph.new_scope()

    reg.contribute(scope)

    assert [n.id for n in scope.current()] == ["HelloWorld#1.end#4", "HelloWorld#1.ask#2", "Info#0"]


class TestDispatch:
    @pytest.mark.asyncio
    async def test_ok(self) -> None:
        reg = CapabilityRegistry([_cap("echo")])

        result = await reg.dispatch(StructuredCall(name="echo", arguments=["hi", 2]))

        assert result.kind is ResultKind.ok
        assert result.output == ["hi", 2]

    @pytest.mark.asyncio
    async def test_unknown_name(self) -> None:
        reg = CapabilityRegistry([_cap("echo"), _cap("ask")])

        result = await reg.dispatch(StructuredCall(name="nope"))

        assert result.kind is ResultKind.feedback
        assert isinstance(result.error, UnknownCapabilityError)
        assert result.error.message == "unknown function 'nope', valid functions are: ask, echo"

    @pytest.mark.asyncio
    async def test_feedback_is_captured(self) -> None:
        def refuse() -> None:
            raise Feedback("bad arg")

        result = await CapabilityRegistry([_cap("refuse", refuse)]).dispatch(StructuredCall(name="refuse"))

        assert result.kind is ResultKind.feedback
        assert result.error.message == "bad arg"

    @pytest.mark.asyncio
    async def test_invalid_arguments_become_feedback(self) -> None:
        def one(x: int) -> int:
            return x

        result = await CapabilityRegistry([_cap("one", one)]).dispatch(StructuredCall(name="one", arguments=[]))

        assert result.kind is ResultKind.feedback

    @pytest.mark.asyncio
    async def test_exit_is_captured(self) -> None:
        def end(value: str) -> None:
            raise Exit(value)

        result = await CapabilityRegistry([_cap("end", end)]).dispatch(StructuredCall(name="end", arguments=["bye"]))

        assert result.kind is ResultKind.exit
        assert result.output == "bye"

    @pytest.mark.asyncio
    async def test_interrupt_is_captured(self) -> None:
        def stop() -> None:
            raise Interrupt("user pressed ctrl-c")

        result = await CapabilityRegistry([_cap("stop", stop)]).dispatch(StructuredCall(name="stop"))

        assert result.kind is ResultKind.interrupt
        assert isinstance(result.error, Interrupt)

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self) -> None:
        def broken() -> None:
            raise ZeroDivisionError("boom")

        with pytest.raises(ZeroDivisionError):
            await CapabilityRegistry([_cap("broken", broken)]).dispatch(StructuredCall(name="broken"))


def test_registry_register_logs_description(caplog: pytest.LogCaptureFixture) -> None:
    cap = Capability(name="ask", invoke=_cap("ask").invoke, description="Ask the user a question.")

    with caplog.at_level(logging.DEBUG, logger="trackway.capabilities.registry"):
        CapabilityRegistry([cap])

    assert [r.getMessage() for r in caplog.records] == [
        "CapabilityRegistry.register: name=ask description=Ask the user a question."
    ]
