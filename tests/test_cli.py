from __future__ import annotations

import asyncio

import pytest
import typer
from typer.testing import CliRunner

import resonance.cli.main as cli
from conftest import FakeGenerator, make_book, make_context
from resonance.job_manager import JobManager

runner = CliRunner()


@pytest.fixture
def cli_context(monkeypatch):
    context = make_context()
    monkeypatch.setattr(cli, "_build_context", lambda: context)
    return context


def test_tones_lists_catalogue():
    result = runner.invoke(cli.app, ["tones"])
    assert result.exit_code == 0
    assert "philosophical" in result.output
    assert "True Crime Suspense" in result.output


def test_excerpt_for_outline(tmp_path):
    book = tmp_path / "book.txt"
    book.write_text(" ".join(f"w{i}" for i in range(30)), encoding="utf-8")

    result = runner.invoke(cli.app, ["excerpt", str(book)])

    assert result.exit_code == 0
    assert "Outline excerpt" in result.output
    assert "Original: 30 words" in result.output


def test_excerpt_for_episode(tmp_path):
    book = tmp_path / "book.txt"
    book.write_text("The keeper lit the lamp.", encoding="utf-8")

    result = runner.invoke(cli.app, ["excerpt", str(book), "--episode", "2", "--total", "4", "--focus", "lamp"])

    assert result.exit_code == 0
    assert "Episode 2/4 excerpt" in result.output


def test_generate_runs_full_series(tmp_path, cli_context):
    epub = tmp_path / "the_lighthouse.epub"
    epub.write_bytes(b"fake epub")

    result = runner.invoke(cli.app, ["generate", str(epub), "--tone", "philosophical", "--author", "Virginia Woolf"])

    assert result.exit_code == 0, result.output
    assert "All 5 episodes ready!" in result.output
    assert "Series Ready" in result.output
    stored = asyncio.run(cli_context.artifacts.get_book("the-lighthouse"))
    assert stored.title == "the lighthouse"
    assert stored.file_type == "epub"


def test_generate_reports_failure_exit_code(tmp_path, monkeypatch):
    from resonance.core.errors import GenerationError

    context = make_context(generator=FakeGenerator(outline_error=GenerationError("503 overwhelmed")))
    monkeypatch.setattr(cli, "_build_context", lambda: context)
    epub = tmp_path / "book.epub"
    epub.write_bytes(b"fake epub")

    result = runner.invoke(cli.app, ["generate", str(epub), "--tone", "witty"])

    assert result.exit_code == 1
    assert "Service busy, try again shortly." in result.output


def test_generate_rejects_unknown_tone_and_file_type(tmp_path, cli_context):
    epub = tmp_path / "book.epub"
    epub.write_bytes(b"fake epub")
    text = tmp_path / "book.txt"
    text.write_text("plain", encoding="utf-8")

    assert runner.invoke(cli.app, ["generate", str(epub), "--tone", "operatic"]).exit_code == 2
    assert runner.invoke(cli.app, ["generate", str(text), "--tone", "witty"]).exit_code == 2


def test_retry_unknown_book(cli_context):
    result = runner.invoke(cli.app, ["retry", "missing-book", "--tone", "witty", "--episodes", "2"])
    assert result.exit_code == 1
    assert "Book not found" in result.output


def test_retry_recovers_failed_episodes(monkeypatch):
    generator = FakeGenerator(fail_episodes={3})
    context = make_context(generator=generator)
    monkeypatch.setattr(cli, "_build_context", lambda: context)
    book = make_book()

    async def first_run():
        await context.artifacts.add_book(book)
        return await JobManager(context).run_full_series(book, "witty")

    assert asyncio.run(first_run()).failed == [3]
    generator.fail_episodes.clear()

    result = runner.invoke(cli.app, ["retry", book.id, "--tone", "witty", "--episodes", "3"])

    assert result.exit_code == 0, result.output
    assert "All 1 episode recovered!" in result.output


def test_parse_episode_numbers():
    assert cli._parse_episode_numbers("5, 2,2") == [2, 5]
    with pytest.raises(typer.BadParameter):
        cli._parse_episode_numbers("two")
    with pytest.raises(typer.BadParameter):
        cli._parse_episode_numbers(" , ")
