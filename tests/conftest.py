from __future__ import annotations

import asyncio
import json
import os
import re
import tempfile
from pathlib import Path

import pytest

# config.json / archive / logs must never land in the working tree while testing
_SANDBOX = Path(tempfile.mkdtemp(prefix="resonance-tests-"))
os.environ["RESONANCE_CONFIG_PATH"] = str(_SANDBOX / "config.json")
os.environ["RESONANCE_DATA_DIR"] = str(_SANDBOX / "data")
os.environ["RESONANCE_LOG_DIR"] = str(_SANDBOX / "logs")

from resonance.config import GenerationSettings  # noqa: E402
from resonance.context import AppContext  # noqa: E402
from resonance.core.errors import GenerationError  # noqa: E402
from resonance.models.library import BookRecord  # noqa: E402
from resonance.services.artifact_store import InMemoryArtifactStore  # noqa: E402

_EPISODE_NUMBER_RE = re.compile(r'"episodeNumber": (\d+)')


def make_outline(episodes: int = 5, title: str = "Echoes of the Lighthouse") -> dict:
    return {
        "title": title,
        "tone": "Deep & Philosophical",
        "totalSeasons": 1,
        "seasons": [
            {
                "number": 1,
                "title": "The Keeper",
                "description": "Solitude and duty at the edge of the sea.",
                "episodes": [
                    {
                        "number": n,
                        "title": f"Chapter {n}",
                        "description": f"Description of chapter {n}",
                        "contentFocus": "the lighthouse keeper and the storm",
                    }
                    for n in range(1, episodes + 1)
                ],
            }
        ],
    }


def make_script(number: int) -> dict:
    return {
        "title": f"Chapter {number}",
        "episodeNumber": number,
        "tone": "Deep & Philosophical",
        "dialogue": [
            {"speaker": "Mara", "text": f"Welcome to episode {number}."},
            {"speaker": "Theo", "text": "Let's talk about the keeper."},
        ],
    }


class FakeGenerator:
    """
    Stands in for the Gemini client. Outline prompts get ``outline``; episode
    prompts are recognised by their ``"episodeNumber": N`` template line.
    """

    def __init__(
        self,
        outline: dict | None = None,
        fail_episodes=(),
        outline_error: BaseException | None = None,
        episode_error: str = "503 The model is overwhelmed",
        block: bool = False,
    ):
        self.outline = outline if outline is not None else make_outline()
        self.fail_episodes = set(fail_episodes)
        self.outline_error = outline_error
        self.episode_error = episode_error
        self.block = block
        self.started = asyncio.Event()
        self.prompts: list[str] = []
        self.episode_calls: list[int] = []
        self.active = 0
        self.max_active = 0

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.started.set()
            if self.block:
                await asyncio.sleep(3600)
            await asyncio.sleep(0)

            match = _EPISODE_NUMBER_RE.search(prompt)
            if match is None:
                if self.outline_error is not None:
                    raise self.outline_error
                return "```json\n" + json.dumps(self.outline) + "\n```"

            number = int(match.group(1))
            self.episode_calls.append(number)
            if number in self.fail_episodes:
                raise GenerationError(self.episode_error)
            return json.dumps(make_script(number))
        finally:
            self.active -= 1


class FakeExtractor:
    def __init__(self, text: str = "", error: BaseException | None = None):
        self.text = text
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def extract(self, file_url: str, file_type: str) -> str:
        self.calls.append((file_url, file_type))
        if self.error is not None:
            raise self.error
        return self.text


BOOK_TEXT = "\n\n".join(
    [
        "The lighthouse keeper climbed the spiral stairs every evening before the storm rolled in from the north.",
        "Far inland, the village baker argued with the miller about the price of flour and the coming winter.",
        "When the storm finally broke, the keeper trimmed the wick and watched the black water heave against the rocks.",
        "Years later the baker's daughter would remember the light sweeping over the roofs like a patient hand.",
    ]
    * 10
)


def make_book(
    book_id: str = "book-lighthouse",
    owner_id: str = "local",
    title: str = "The Lighthouse",
    author: str = "Virginia Woolf",
    store_book_id: str | None = None,
) -> BookRecord:
    return BookRecord(
        id=book_id,
        owner_id=owner_id,
        title=title,
        author=author,
        file_url=f"/books/{book_id}.epub",
        file_type="epub",
        source="store" if store_book_id else "upload",
        store_book_id=store_book_id,
    )


def make_context(generator=None, extractor=None, artifacts=None, **settings) -> AppContext:
    settings.setdefault("daily_series_limit", None)
    return AppContext(
        settings=GenerationSettings(**settings),
        artifacts=artifacts if artifacts is not None else InMemoryArtifactStore(),
        extractor=extractor if extractor is not None else FakeExtractor(BOOK_TEXT),
        generator=generator if generator is not None else FakeGenerator(),
    )


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    import resonance.utils.logging as logging_utils
    import resonance.utils.timing as timing_utils

    monkeypatch.setattr(logging_utils, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(timing_utils, "LOG_DIR", tmp_path / "logs")
    return tmp_path / "logs"


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor(BOOK_TEXT)


@pytest.fixture
def context(generator, extractor) -> AppContext:
    return make_context(generator=generator, extractor=extractor)


@pytest.fixture
def book() -> BookRecord:
    return make_book()
