import pytest

from conftest import FakeLLM
from localradar_ai.common.errors import ProviderError
from localradar_ai.extractor_agent.agent import (
    SYSTEM_INSTRUCTION, AttributeExtractor, clean_response, parse_attributes, scan_pairs,
)

PROMPT = "red jacket near me"


def extract(reply):
    return AttributeExtractor(FakeLLM([reply])).extract(PROMPT)


def test_plain_json_object():
    assert extract('{"type": "items", "color": "red"}') == {"type": "items", "color": "red"}


def test_code_fence_and_leading_commentary_are_stripped():
    reply = 'Sure! Here are the attributes:\n```json\n{"color": "red", "type": "jacket"}\n```'
    assert extract(reply) == {"color": "red", "type": "jacket"}


def test_trailing_prose_is_ignored():
    reply = '{"color": "blue", "size": "large"}\nLet me know if you need anything else {or more}.'
    assert extract(reply) == {"color": "blue", "size": "large"}


def test_multiline_object():
    reply = '```\n{\n  "type": "shop",\n  "distance": 5\n}\n```'
    assert extract(reply) == {"type": "shop", "distance": 5}


def test_values_are_coerced_to_scalars():
    reply = '{"color": ["red", "black"], "brand": null, "size": " M ", "extra": {"a": 1}}'
    assert extract(reply) == {"color": "red, black", "size": "M", "extra": '{"a": 1}'}


def test_invalid_json_falls_back_to_key_value_scan():
    assert extract("{color: red, size: large}") == {"color": "red", "size": "large"}


def test_truncated_json_recovers_complete_pairs():
    assert extract('{"color": "red", "material": "leather", "size": ') == {
        "color": "red", "material": "leather",
    }


def test_unparseable_reply_returns_query():
    assert extract("I am not sure what you mean.") == {"query": PROMPT}


def test_non_object_json_returns_query():
    assert extract("[1, 2, 3]") == {"query": PROMPT}


def test_empty_object_gives_empty_map():
    assert extract("{}") == {}


def test_provider_failure_returns_query():
    llm = FakeLLM(error=ProviderError("fake", "timeout"))
    assert AttributeExtractor(llm).extract(PROMPT) == {"query": PROMPT}


def test_request_contents():
    llm = FakeLLM(['{"color": "red"}'])
    AttributeExtractor(llm, max_tokens=99).extract(PROMPT)

    system, messages, max_tokens = llm.calls[0]
    assert system == SYSTEM_INSTRUCTION
    assert messages == [PROMPT]
    assert max_tokens == 99


def test_clean_response():
    assert clean_response("```json\n{}\n```") == "{}"
    assert clean_response(None) == ""


@pytest.mark.parametrize("text,expected", [
    ('"color": "red", "size": "L"', {"color": "red", "size": "L"}),
    ("type = shop; distance = 3 km", {"type": "shop", "distance": "3 km"}),
    ("Color: Red", {"color": "Red"}),
    ("nothing to see", {}),
])
def test_scan_pairs(text, expected):
    assert scan_pairs(text) == expected


def test_parse_attributes_is_total():
    for content in ("", "}{", "{{{", "```", "null"):
        result = parse_attributes(content, PROMPT)
        assert isinstance(result, dict)
