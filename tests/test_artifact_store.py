from __future__ import annotations

import asyncio
import json

import pytest

from conftest import make_book
from resonance.models.library import Artifact
from resonance.models.tones import get_tone
from resonance.services.artifact_store import InMemoryArtifactStore, JsonArtifactStore

PHILOSOPHICAL = get_tone("philosophical")
WITTY = get_tone("witty")


def _series(owner_id, book_id, tone=PHILOSOPHICAL, created_at="2026-01-01T00:00:00+00:00", legacy=False):
    content = {"title": "Echoes", "tone": tone.label, "totalSeasons": 1, "seasons": []}
    if not legacy:
        content["_toneId"] = tone.id
    return Artifact(
        owner_id=owner_id,
        book_id=book_id,
        type="podcast-series",
        title=f"Series ({tone.label}): The Lighthouse",
        content=content,
        created_at=created_at,
    )


def _episode(owner_id, book_id, number, tone=PHILOSOPHICAL, legacy=False):
    content = {"title": f"Chapter {number}", "episodeNumber": number, "dialogue": []}
    if not legacy:
        content["_toneId"] = tone.id
        content["_toneLabel"] = tone.label
    return Artifact(
        owner_id=owner_id,
        book_id=book_id,
        type="podcast",
        title=f"Echoes ({tone.label}) - Ep {number}: Chapter {number}",
        content=content,
    )


def test_query_filters_and_orders_newest_first():
    store = InMemoryArtifactStore()

    async def scenario():
        await store.insert(_series("local", "b1", created_at="2026-01-01T00:00:00+00:00"))
        await store.insert(_series("local", "b1", tone=WITTY, created_at="2026-02-01T00:00:00+00:00"))
        await store.insert(_series("alice", "b1"))
        await store.insert(_episode("local", "b1", 1))
        return (
            await store.query("local", type="podcast-series"),
            await store.query("local", tone_id="witty"),
            await store.query("local", book_id="other"),
        )

    series, witty, other = asyncio.run(scenario())
    assert [a.content["_toneId"] for a in series] == ["witty", "philosophical"]
    assert len(witty) == 1
    assert other == []


def test_trash_hides_artifacts():
    store = InMemoryArtifactStore()

    async def scenario():
        artifact_id = await store.insert(_series("local", "b1"))
        await store.trash("alice", artifact_id)
        still_there = await store.find_series("local", "b1", PHILOSOPHICAL)
        await store.trash("local", artifact_id)
        return still_there, await store.find_series("local", "b1", PHILOSOPHICAL)

    still_there, gone = asyncio.run(scenario())
    assert still_there is not None
    assert gone is None


def test_find_series_falls_back_to_tone_label_for_legacy_content():
    store = InMemoryArtifactStore()

    async def scenario():
        await store.insert(_series("local", "b1", legacy=True))
        return (
            await store.find_series("local", "b1", PHILOSOPHICAL),
            await store.find_series("local", "b1", WITTY),
        )

    found, missing = asyncio.run(scenario())
    assert found is not None
    assert missing is None


def test_find_episode_by_number_and_tone():
    store = InMemoryArtifactStore()

    async def scenario():
        await store.insert(_episode("local", "b1", 1))
        await store.insert(_episode("local", "b1", 2, tone=WITTY))
        return (
            await store.find_episode("local", "b1", PHILOSOPHICAL, 1),
            await store.find_episode("local", "b1", PHILOSOPHICAL, 2),
            await store.find_episode("local", "b1", WITTY, 2),
        )

    first, wrong_tone, witty = asyncio.run(scenario())
    assert first.content["episodeNumber"] == 1
    assert wrong_tone is None
    assert witty is not None


def test_inserted_artifacts_are_isolated_from_caller_mutation():
    store = InMemoryArtifactStore()
    artifact = _series("local", "b1")

    async def scenario():
        await store.insert(artifact)
        artifact.content["title"] = "mutated"
        return await store.find_series("local", "b1", PHILOSOPHICAL)

    assert asyncio.run(scenario()).content["title"] == "Echoes"


def test_copy_shared_by_store_id():
    store = InMemoryArtifactStore()
    source = make_book("alice-copy", owner_id="alice", store_book_id="gutenberg-144")
    target = make_book("local-copy", owner_id="local", store_book_id="gutenberg-144")

    async def scenario():
        await store.add_book(source)
        await store.add_book(target)
        await store.insert(_series("alice", source.id))
        await store.insert(_episode("alice", source.id, 1))
        await store.insert(_episode("alice", source.id, 2))
        copied = await store.copy_shared_artifacts("local", target.id, PHILOSOPHICAL, target.identity())
        return copied, await store.query("local", book_id=target.id), await store.query("alice")

    copied, local, alice = asyncio.run(scenario())
    assert copied is True
    assert sorted(a.type for a in local) == ["podcast", "podcast", "podcast-series"]
    assert all(a.owner_id == "local" for a in local)
    assert len(alice) == 3


def test_copy_shared_by_title_and_author_for_uploads():
    store = InMemoryArtifactStore()
    source = make_book("up-1", owner_id="alice", title="Meditations (Annotated Edition)", author="Marcus Aurelius Antoninus")
    target = make_book("up-2", owner_id="local", title="Meditations", author="Marcus Aurelius")

    async def scenario():
        await store.add_book(source)
        await store.add_book(target)
        await store.insert(_series("alice", source.id))
        await store.insert(_episode("alice", source.id, 1))
        return await store.copy_shared_artifacts("local", target.id, PHILOSOPHICAL, target.identity())

    assert asyncio.run(scenario()) is True


def test_copy_shared_requires_matching_author():
    store = InMemoryArtifactStore()
    source = make_book("up-1", owner_id="alice", title="Meditations", author="Someone Else")
    target = make_book("up-2", owner_id="local", title="Meditations", author="Marcus Aurelius")

    async def scenario():
        await store.add_book(source)
        await store.add_book(target)
        await store.insert(_series("alice", source.id))
        await store.insert(_episode("alice", source.id, 1))
        return await store.copy_shared_artifacts("local", target.id, PHILOSOPHICAL, target.identity())

    assert asyncio.run(scenario()) is False


def test_copy_shared_needs_series_and_episodes_of_the_tone():
    store = InMemoryArtifactStore()
    source = make_book("alice-copy", owner_id="alice", store_book_id="gutenberg-1")
    target = make_book("local-copy", owner_id="local", store_book_id="gutenberg-1")

    async def scenario():
        await store.add_book(source)
        await store.add_book(target)
        await store.insert(_series("alice", source.id))
        no_episodes = await store.copy_shared_artifacts("local", target.id, PHILOSOPHICAL, target.identity())
        wrong_tone = await store.copy_shared_artifacts("local", target.id, WITTY, target.identity())
        return no_episodes, wrong_tone

    assert asyncio.run(scenario()) == (False, False)


def test_copy_shared_legacy_artifacts_match_by_label():
    store = InMemoryArtifactStore()
    source = make_book("alice-copy", owner_id="alice", store_book_id="gutenberg-2")
    target = make_book("local-copy", owner_id="local", store_book_id="gutenberg-2")

    async def scenario():
        await store.add_book(source)
        await store.add_book(target)
        await store.insert(_series("alice", source.id, legacy=True))
        await store.insert(_episode("alice", source.id, 1, legacy=True))
        copied = await store.copy_shared_artifacts("local", target.id, PHILOSOPHICAL, target.identity())
        return copied, await store.find_series("local", target.id, PHILOSOPHICAL)

    copied, series = asyncio.run(scenario())
    assert copied is True
    assert series is not None


def test_daily_generation_log_is_per_owner():
    store = InMemoryArtifactStore()

    async def scenario():
        await store.record_generation("local", "b1", "witty")
        await store.record_generation("local", "b2", "casual")
        await store.record_generation("alice", "b1", "witty")
        return await store.count_generations_today("local"), await store.count_generations_today("bob")

    assert asyncio.run(scenario()) == (2, 0)


def test_json_store_persists_between_instances(tmp_path):
    book = make_book()

    async def write():
        store = JsonArtifactStore(tmp_path)
        await store.add_book(book)
        await store.insert(_series("local", book.id))
        await store.record_generation("local", book.id, "philosophical")

    async def read():
        store = JsonArtifactStore(tmp_path)
        return (
            await store.get_book(book.id),
            await store.find_series("local", book.id, PHILOSOPHICAL),
            await store.count_generations_today("local"),
        )

    asyncio.run(write())
    stored_book, series, generations = asyncio.run(read())

    assert stored_book == book
    assert series.content["_toneId"] == "philosophical"
    assert generations == 1
    data = json.loads((tmp_path / "archive.json").read_text(encoding="utf-8"))
    assert set(data) == {"books", "artifacts", "generation_log"}


def test_json_store_refuses_corrupt_archive(tmp_path):
    (tmp_path / "archive.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        JsonArtifactStore(tmp_path)
