from __future__ import annotations

import json

import pytest

from trackway.errors import Feedback, ResponseParseError, UnknownCapabilityError
from trackway.prompts.graph import DeclarationGraph
from trackway.prompts.scope import Scope
from trackway.prompts.template import (
    RESPONSE_FORMAT,
    NaiveTemplate,
    StructuredCall,
    Template,
    block_quote,
)


@pytest.fixture
def template() -> NaiveTemplate:
    return NaiveTemplate()


def test_naive_template_satisfies_protocol(template: NaiveTemplate) -> None:
    assert isinstance(template, Template)


def test_block_quote() -> None:
    assert block_quote("x = 1") == "```python\nx = 1\n```"
    assert block_quote("{}", "json") == "```json\n{}\n```"


class TestRenderContext:
    def test_contains_renderable_declarations_in_scope_order(
        self, template: NaiveTemplate, hello_graph: DeclarationGraph
    ) -> None:
        scope = hello_graph.new_scope()
        scope.add_by_pattern("method_decl", Scope.ident("HelloWorld"), Scope.ident("ask"))

        text = template.render_context(scope)

        assert text.startswith("You are the runtime of a program, you decide which functions to call.")
        assert block_quote("def ask(self, query: str) -> str: ...\n\nInfo = dict[str, str]") in text
        assert RESPONSE_FORMAT in text
        assert text.endswith("Let's begin!")

    def test_plaintext_nodes_are_not_rendered(self, template: NaiveTemplate, hello_graph: DeclarationGraph) -> None:
        scope = hello_graph.new_scope()
        scope.add_by_pattern("fn_decl", Scope.ident("notes"))
        assert len(scope) == 1

        assert "helper notes" not in template.render_context(scope)

    def test_language_option(self, hello_graph: DeclarationGraph) -> None:
        text = NaiveTemplate(language="typescript").render_context(hello_graph.new_scope())
        assert "```typescript\n" in text


class TestRenderOutput:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("hi", '```json\n"hi"\n```'),
            (None, "```json\nnull\n```"),
            ({"a": [1, 2]}, '```json\n{"a": [1, 2]}\n```'),
            (3.5, "```json\n3.5\n```"),
        ],
    )
    def test_render_output(self, template: NaiveTemplate, value, expected: str) -> None:
        assert template.render_output(value) == expected

    def test_render_output_handles_pydantic_models(self, template: NaiveTemplate) -> None:
        call = StructuredCall(name="greet", arguments=["bob"])
        rendered = template.render_output(call)
        assert json.loads(rendered.split("\n")[1]) == {"name": "greet", "reasoning": None, "arguments": ["bob"]}


def test_render_error_restates_format(template: NaiveTemplate) -> None:
    text = template.render_error(UnknownCapabilityError("nope", ["greet"]))

    assert text.startswith("error: unknown function 'nope', valid functions are: greet.")
    assert block_quote(RESPONSE_FORMAT, "json") in text


def test_render_error_accepts_plain_feedback(template: NaiveTemplate) -> None:
    assert template.render_error(Feedback("bad arg")).startswith("error: bad arg.")


class TestParseResponse:
    def test_bare_object(self, template: NaiveTemplate) -> None:
        call = template.parse_response('{"name": "greet", "reasoning": "r", "arguments": ["bob", 1]}')

        assert call == StructuredCall(name="greet", reasoning="r", arguments=["bob", 1])

    def test_optional_fields_default(self, template: NaiveTemplate) -> None:
        call = template.parse_response('  {"name": "greet"}\n')

        assert call.reasoning is None
        assert call.arguments == []

    def test_unknown_fields_ignored(self, template: NaiveTemplate) -> None:
        assert template.parse_response('{"name": "greet", "confidence": 0.9}').name == "greet"

    @pytest.mark.parametrize(
        "reply",
        [
            'Sure! Here is my call:\n```json\n{"name": "greet", "arguments": ["bob"]}\n```',
            '```\n{"name": "greet", "arguments": ["bob"]}\n```',
            'I think\n```python\nprint("no")\n```\nthen\n```json\n{"name": "greet", "arguments": ["bob"]}\n```',
            '```json {"name": "greet", "arguments": ["bob"]}```',
            'Calling: ```{"name": "greet", "arguments": ["bob"]}```',
        ],
    )
    def test_fenced_blocks(self, template: NaiveTemplate, reply: str) -> None:
        assert template.parse_response(reply) == StructuredCall(name="greet", arguments=["bob"])

    @pytest.mark.parametrize(
        "call",
        [
            StructuredCall(name="greet", arguments=[]),
            StructuredCall(name="a.b", reasoning="because\nit is", arguments=[{"k": [1, None]}, "x", 2.5, True]),
        ],
    )
    def test_parses_its_own_serialization(self, template: NaiveTemplate, call: StructuredCall) -> None:
        assert template.parse_response(json.dumps(call.model_dump())) == call

    @pytest.mark.parametrize(
        "reply,reason",
        [
            ("I would like to greet bob", "invalid JSON"),
            ("[1, 2, 3]", "expected a JSON object"),
            ('{"reasoning": "no name"}', "name"),
            ('{"name": ""}', "name"),
            ('{"name": "greet", "arguments": "bob"}', "arguments"),
        ],
    )
    def test_unparseable_replies(self, template: NaiveTemplate, reply: str, reason: str) -> None:
        with pytest.raises(ResponseParseError) as exc_info:
            template.parse_response(reply)

        assert exc_info.value.text == reply
        assert reason in exc_info.value.reason
        assert reply in exc_info.value.message
