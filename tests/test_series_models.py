from __future__ import annotations

import pytest

from resonance.core.errors import UnknownToneError
from resonance.models.series import Episode, normalize_series, parse_script
from resonance.models.tones import PODCAST_TONES, get_tone, tone_id_for_label


def _episode(number, title=None, focus="focus"):
    return {"number": number, "title": title or f"Ep {number}", "description": "", "contentFocus": focus}


def test_legacy_flat_episodes_get_default_season():
    series = normalize_series({"title": "Old", "episodes": [_episode(1), _episode(2)]})

    assert series.total_seasons == 1
    assert len(series.seasons) == 1
    assert series.seasons[0].number == 1
    assert series.seasons[0].title == "Archive Echoes"
    assert [ep.number for _, ep in series.all_episodes()] == [1, 2]


def test_total_seasons_follows_actual_seasons():
    raw = {
        "title": "Epic",
        "totalSeasons": 5,
        "seasons": [
            {"number": 1, "title": "One", "episodes": [_episode(1), _episode(2)]},
            {"number": 2, "title": "Two", "episodes": [_episode(3), _episode(4)]},
        ],
    }
    series = normalize_series(raw)

    assert series.total_seasons == 2
    assert [ep.number for _, ep in series.all_episodes()] == [1, 2, 3, 4]


def test_colliding_episode_numbers_are_renumbered_in_reading_order():
    raw = {
        "title": "Epic",
        "seasons": [
            {"number": 1, "title": "One", "episodes": [_episode(1, "A"), _episode(2, "B")]},
            {"number": 2, "title": "Two", "episodes": [_episode(1, "C"), _episode(2, "D")]},
        ],
    }
    series = normalize_series(raw)

    assert [(ep.number, ep.title) for _, ep in series.all_episodes()] == [(1, "A"), (2, "B"), (3, "C"), (4, "D")]


def test_missing_or_string_numbers_are_coerced():
    series = normalize_series({"title": "T", "episodes": [{"title": "A"}, {"number": "2", "title": "B"}]})
    assert [ep.number for _, ep in series.all_episodes()] == [1, 2]


def test_null_episode_fields_become_empty_strings():
    raw = {
        "title": "T",
        "episodes": [
            {"number": 1, "title": None, "description": None, "contentFocus": None, "script": None},
            {"number": 2, "title": "B", "status": "unknown"},
        ],
    }
    series = normalize_series(raw)

    first, second = [ep for _, ep in series.all_episodes()]
    assert (first.title, first.description, first.content_focus) == ("", "", "")
    assert first.script is None
    assert second.title == "B"
    assert second.status == "planned"


def test_content_focus_alias_and_tone_override():
    series = normalize_series(
        {"title": "T", "tone": "Casual Banter", "episodes": [_episode(1, focus="the storm")]},
        tone="Deep & Philosophical",
        tone_id="philosophical",
    )
    _, episode = series.all_episodes()[0]

    assert episode.content_focus == "the storm"
    assert series.tone == "Deep & Philosophical"
    assert series.tone_id == "philosophical"

    content = series.to_content()
    assert content["_toneId"] == "philosophical"
    assert content["totalSeasons"] == 1
    assert content["seasons"][0]["episodes"][0]["contentFocus"] == "the storm"


def test_stored_content_normalizes_back_to_the_same_series():
    series = normalize_series({"title": "T", "episodes": [_episode(1), _episode(2)]}, tone_id="witty")
    again = normalize_series(series.to_content())
    assert again == series


def test_neighbours():
    series = normalize_series({"title": "T", "episodes": [_episode(1), _episode(2), _episode(3)]})

    previous, following = series.neighbours(1)
    assert previous is None and following.number == 2

    previous, following = series.neighbours(3)
    assert previous.number == 2 and following is None

    assert series.neighbours(99) == (None, None)


def test_normalize_rejects_non_objects():
    with pytest.raises(ValueError):
        normalize_series(["not", "an", "object"])


def test_parse_script_forces_episode_number_and_drops_empty_lines():
    episode = Episode(number=4, title="The Storm")
    raw = {
        "title": "",
        "episodeNumber": 1,
        "dialogue": [
            {"speaker": "Mara", "text": "Hello."},
            {"speaker": "Theo", "text": "   "},
            {"text": "No speaker given."},
            "garbage",
        ],
    }
    script = parse_script(raw, episode, "Deep & Philosophical")

    assert script.episode_number == 4
    assert script.title == "The Storm"
    assert [line.speaker for line in script.dialogue] == ["Mara", "Host"]
    assert script.model_dump(by_alias=True)["episodeNumber"] == 4


def test_parse_script_without_dialogue_fails():
    with pytest.raises(ValueError):
        parse_script({"dialogue": []}, Episode(number=1), "Casual Banter")


def test_tone_catalogue():
    assert [tone.id for tone in PODCAST_TONES] == ["philosophical", "suspense", "witty", "analytical", "casual"]
    assert get_tone("suspense").label == "True Crime Suspense"
    assert tone_id_for_label("Humorous & Witty") == "witty"
    assert tone_id_for_label("Unknown") is None
    with pytest.raises(UnknownToneError):
        get_tone("operatic")
