"""
Tests for model output parsing.

Covers the three ParsedResponse variants and the balanced-brace JSON
extraction used for freeform (Ollama) replies.
"""

import pytest

from mindshift.services.debate.models import (
    RawTextWithExtractedFields,
    Structured,
    Unparseable,
)
from mindshift.services.debate.parsing import (
    coerce_stance,
    extract_json_object,
    parse_model_output,
)


# =============================================================================
# extract_json_object
# =============================================================================

def test_extract_json_after_think_block():
    assert extract_json_object('<think> {"stance":5}') == '{"stance":5}'


def test_extract_nested_object():
    text = 'Sure! {"a": {"b": 1}, "c": 2} trailing words'
    assert extract_json_object(text) == '{"a": {"b": 1}, "c": 2}'


def test_extract_ignores_braces_inside_strings():
    text = 'prefix {"aiResponse": "use } and { freely", "newStance": 4} suffix'
    assert extract_json_object(text) == '{"aiResponse": "use } and { freely", "newStance": 4}'


def test_extract_handles_escaped_quotes():
    text = '{"aiResponse": "she said \\"no}\\"", "newStance": 2}'
    assert extract_json_object(text) == text


def test_extract_without_braces_returns_none():
    assert extract_json_object("no json here") is None


def test_extract_unbalanced_returns_none():
    assert extract_json_object('{"newStance": 4') is None


# =============================================================================
# coerce_stance
# =============================================================================

@pytest.mark.parametrize(
    "value, expected",
    [
        (4, 4.0),
        (3.5, 3.5),
        ("6.25", 6.25),
        (None, None),
        ("high", None),
        (True, None),
        (float("nan"), None),
        (float("inf"), None),
        ([5], None),
    ],
)
def test_coerce_stance(value, expected):
    assert coerce_stance(value) == expected


# =============================================================================
# parse_model_output
# =============================================================================

def test_whole_json_reply_is_structured():
    parsed = parse_model_output(
        '{"aiResponse": "Good point.", "newStance": 4.5, "reasoning": "Solid data."}'
    )

    assert isinstance(parsed, Structured)
    assert parsed.fields.response_text == "Good point."
    assert parsed.fields.new_stance == 4.5
    assert parsed.fields.reasoning == "Solid data."


def test_snake_case_keys_are_accepted():
    parsed = parse_model_output('{"ai_response": "Hm.", "new_stance": "7", "shift_reasoning": "Weak."}')

    assert isinstance(parsed, Structured)
    assert parsed.fields.response_text == "Hm."
    assert parsed.fields.new_stance == "7"
    assert parsed.fields.reasoning == "Weak."


def test_json_embedded_in_text_is_extracted():
    raw = (
        "<think>The user argues about emissions. {not json}</think>\n"
        '{"aiResponse": "Emissions matter.", "newStance": 3, "reasoning": "Convincing."}'
    )
    parsed = parse_model_output(raw)

    # The braces inside <think> are skipped over
    assert isinstance(parsed, RawTextWithExtractedFields)
    assert parsed.fields.response_text == "Emissions matter."
    assert parsed.fields.new_stance == 3
    assert parsed.fields.reasoning == "Convincing."


def test_json_after_preamble_is_extracted():
    raw = 'Here is my answer:\n{"aiResponse": "Emissions matter.", "newStance": 3, "reasoning": "Convincing."}'
    parsed = parse_model_output(raw)

    assert isinstance(parsed, RawTextWithExtractedFields)
    assert parsed.fields.response_text == "Emissions matter."
    assert parsed.fields.new_stance == 3
    assert parsed.raw_text == raw


def test_delimited_fields_are_extracted():
    raw = (
        "Response: Commuting is only one factor.\n"
        "It does not settle the question.\n"
        "New Stance: 6.5\n"
        "Reasoning: The argument ignored office energy use."
    )
    parsed = parse_model_output(raw)

    assert isinstance(parsed, RawTextWithExtractedFields)
    assert parsed.fields.response_text == (
        "Commuting is only one factor.\nIt does not settle the question."
    )
    assert parsed.fields.new_stance == "6.5"
    assert parsed.fields.reasoning == "The argument ignored office energy use."


def test_empty_reply_is_unparseable():
    parsed = parse_model_output("   ")

    assert isinstance(parsed, Unparseable)
    assert parsed.reason == "empty response"


def test_none_reply_is_unparseable():
    assert isinstance(parse_model_output(None), Unparseable)


def test_prose_without_fields_is_unparseable():
    parsed = parse_model_output("I think you make a decent point overall.")

    assert isinstance(parsed, Unparseable)


def test_json_array_is_not_structured():
    parsed = parse_model_output('[{"newStance": 4}]')

    # The array itself is not an object, but the object inside it is
    assert isinstance(parsed, RawTextWithExtractedFields)
    assert parsed.fields.new_stance == 4
