from __future__ import annotations

import pytest

from resonance.core.errors import ModelResponseParseError
from resonance.services.generation_service import parse_model_json, repair_json_strings


def test_parses_fenced_json():
    assert parse_model_json('```json\n{"title": "Echoes"}\n```') == {"title": "Echoes"}


def test_extracts_outer_object_from_prose():
    raw = 'Here is your outline: {"title": "Echoes", "seasons": []} Hope it helps!'
    assert parse_model_json(raw) == {"title": "Echoes", "seasons": []}


def test_top_level_array():
    assert parse_model_json('[{"speaker": "Mara", "text": "Hi"}]') == [{"speaker": "Mara", "text": "Hi"}]


def test_trailing_commas_are_removed():
    assert parse_model_json('{"episodes": [1, 2,], }') == {"episodes": [1, 2]}


def test_unescaped_inner_quotes_become_single_quotes():
    raw = '{"text": "He said "hello" to me", "speaker": "Theo"}'
    assert parse_model_json(raw) == {"text": "He said 'hello' to me", "speaker": "Theo"}


def test_raw_newlines_inside_strings_become_spaces():
    raw = '{"text": "line one\nline two"}'
    assert parse_model_json(raw) == {"text": "line one line two"}


def test_repair_keeps_escaped_quotes():
    text = '{"text": "a \\"quoted\\" word"}'
    assert repair_json_strings(text) == text


def test_unrecoverable_output_raises_with_excerpt():
    raw = "I'm sorry, I can't produce JSON today. " * 40
    with pytest.raises(ModelResponseParseError) as excinfo:
        parse_model_json(raw)
    assert excinfo.value.raw_excerpt == raw[:500]
    assert "Failed to extract valid JSON" in str(excinfo.value)


def test_empty_output_raises():
    with pytest.raises(ModelResponseParseError):
        parse_model_json("")
