"""
Typer-based CLI application entry point
"""
import asyncio
import json
import re
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..context import AppContext, RunCallbacks
from ..core.config_manager import ConfigManager
from ..core.errors import ResonanceError
from ..job_manager import JobManager, RunResult
from ..models.library import BookRecord
from ..models.series import normalize_series
from ..models.tones import PODCAST_TONES, get_tone
from ..services.extraction_service import TextExtractor
from ..services.text_service import TextService

app = typer.Typer(
    name="resonance",
    help="🎙️ Resonance - e-book podcast series generator",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

_NOTIFICATION_STYLES = {
    "info": "cyan",
    "success": "green",
    "error": "red",
    "episode": "magenta",
    "series": "blue",
}


def _build_context() -> AppContext:
    return AppContext.create()


def _file_type(path: Path) -> str:
    suffix = path.suffix.lower().lstrip(".")
    if suffix not in ("epub", "pdf"):
        raise typer.BadParameter(f"Unsupported file type: {path.suffix or '(none)'} (expected .epub or .pdf)")
    return suffix


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-") or "book"


def _parse_episode_numbers(raw: str) -> list[int]:
    try:
        numbers = sorted({int(part) for part in raw.split(",") if part.strip()})
    except ValueError:
        raise typer.BadParameter(f"Episodes must be comma-separated numbers, got {raw!r}")
    if not numbers:
        raise typer.BadParameter("At least one episode number is required")
    return numbers


def _watch_notifications(context: AppContext):
    """새 알림을 콘솔에 출력하는 구독을 등록합니다."""
    seen: set[str] = set()

    def on_change(notifications):
        for notification in reversed(notifications):
            if notification.id in seen:
                continue
            seen.add(notification.id)
            style = _NOTIFICATION_STYLES.get(notification.type, "white")
            console.print(f"[{style}]● {notification.title}[/{style}] {notification.body}")

    return context.notifications.subscribe(on_change)


def _print_result(result: RunResult) -> None:
    style = "green" if result.status == "done" else "red"
    lines = [
        f"[bold]Status:[/bold] [{style}]{result.status}[/{style}] ({result.outcome})",
        f"[bold]Message:[/bold] {result.message}",
    ]
    if result.series is not None:
        lines.append(f"[bold]Series:[/bold] {result.series.title} ({result.series.episode_count()} episodes)")
    if result.ready:
        lines.append(f"[bold]Ready:[/bold] {', '.join(str(n) for n in result.ready)}")
    if result.failed:
        lines.append(f"[bold]Failed:[/bold] [red]{', '.join(str(n) for n in result.failed)}[/red]")
    console.print(Panel.fit("\n".join(lines), title=f"Job {result.job_id}", border_style=style))


@app.command()
def tones():
    """
    사용 가능한 팟캐스트 톤 목록을 표시합니다.
    """
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", width=14)
    table.add_column("Label", style="green", width=24)
    table.add_column("Description", style="yellow")
    for tone in PODCAST_TONES:
        table.add_row(tone.id, tone.label, tone.description)
    console.print(table)


@app.command()
def excerpt(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="텍스트(.txt) 또는 EPUB/PDF 파일"),
    episode: Optional[int] = typer.Option(None, "--episode", "-e", min=1, help="에피소드 번호 (없으면 아웃라인용 발췌)"),
    total: int = typer.Option(1, "--total", "-t", min=1, help="전체 에피소드 수"),
    focus: str = typer.Option("", "--focus", "-f", help="에피소드 contentFocus"),
):
    """
    생성에 쓰일 발췌문과 단어 수를 미리 봅니다.
    """
    settings = ConfigManager().generation_settings()
    if file.suffix.lower() == ".txt":
        text = file.read_text(encoding="utf-8")
    else:
        extractor = TextExtractor.from_settings(settings)
        try:
            text = asyncio.run(extractor.extract(str(file), _file_type(file)))
        except ResonanceError as e:
            console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(code=1)

    service = TextService.from_settings(settings)
    if episode is None:
        result = service.outline_excerpt(text)
        title = "Outline excerpt"
    else:
        result = service.episode_excerpt(text, focus, episode, total)
        title = f"Episode {episode}/{total} excerpt"

    console.print(result)
    console.print(Panel.fit(
        f"[bold cyan]{title}[/bold cyan]\n"
        f"Original: {len(text.split()):,} words\n"
        f"Excerpt: {len(result.split()):,} words",
        border_style="cyan",
    ))


@app.command()
def generate(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="EPUB 또는 PDF 파일"),
    tone: str = typer.Option(..., "--tone", help="톤 ID (resonance tones 참고)"),
    title: Optional[str] = typer.Option(None, "--title", help="책 제목 (기본: 파일 이름)"),
    author: str = typer.Option("", "--author", help="저자"),
    book_id: Optional[str] = typer.Option(None, "--book-id", help="아카이브에서 사용할 책 ID"),
    store_id: Optional[str] = typer.Option(None, "--store-id", help="스토어 카탈로그 ID (공유 아카이브 조회용)"),
):
    """
    책 하나로 팟캐스트 시리즈 전체를 생성합니다.
    """
    try:
        get_tone(tone)
    except ResonanceError as e:
        raise typer.BadParameter(str(e))

    file_type = _file_type(file)
    book_title = title or file.stem.replace("_", " ")
    context = _build_context()
    book = BookRecord(
        id=book_id or _slug(book_title),
        owner_id=context.owner_id,
        title=book_title,
        author=author,
        file_url=str(file.resolve()),
        file_type=file_type,
        source="store" if store_id else "upload",
        store_book_id=store_id,
    )

    console.print(Panel.fit(
        f"[bold cyan]🎙️ {book.title}[/bold cyan]\nTone: {tone}  ·  Book ID: {book.id}",
        border_style="cyan",
    ))

    callbacks = RunCallbacks(
        on_outline=lambda series: console.print(
            f"[blue]✓[/blue] Outline: {series.title} ({series.episode_count()} episodes)"
        ),
    )

    async def run() -> RunResult:
        await context.artifacts.add_book(book)
        manager = JobManager(context)
        return await manager.run_full_series(book, tone, callbacks=callbacks)

    unsubscribe = _watch_notifications(context)
    try:
        result = asyncio.run(run())
    finally:
        unsubscribe()

    _print_result(result)
    if result.status != "done":
        raise typer.Exit(code=1)


@app.command()
def retry(
    book_id: str = typer.Argument(..., help="아카이브의 책 ID"),
    tone: str = typer.Option(..., "--tone", help="톤 ID"),
    episodes: str = typer.Option(..., "--episodes", help="다시 생성할 에피소드 번호 (예: 2,5)"),
):
    """
    실패한 에피소드만 다시 생성합니다.
    """
    numbers = _parse_episode_numbers(episodes)
    try:
        tone_info = get_tone(tone)
    except ResonanceError as e:
        raise typer.BadParameter(str(e))

    context = _build_context()

    async def run() -> Optional[RunResult]:
        book = await context.artifacts.get_book(book_id)
        if book is None:
            console.print(f"[red]✗[/red] Book not found in archive: {book_id}")
            return None
        stored = await context.artifacts.find_series(context.owner_id, book.id, tone_info)
        if stored is None:
            console.print(f"[red]✗[/red] No {tone_info.label} series found for {book.title}")
            return None
        series = normalize_series(stored.content, tone=tone_info.label, tone_id=tone_info.id)
        return await JobManager(context).retry_failed_episodes(book, series, numbers, tone_info.id)

    unsubscribe = _watch_notifications(context)
    try:
        result = asyncio.run(run())
    finally:
        unsubscribe()

    if result is None:
        raise typer.Exit(code=1)
    _print_result(result)
    if result.status != "done":
        raise typer.Exit(code=1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="바인딩 주소 (기본: HOST 또는 0.0.0.0)"),
    port: Optional[int] = typer.Option(None, "--port", help="포트 (기본: PORT 또는 8000)"),
):
    """
    REST API 서버를 실행합니다.
    """
    from ..server import main as run_server

    run_server(host=host, port=port)


@app.command()
def config(
    show: bool = typer.Option(False, "--show", "-s", help="현재 설정 표시"),
):
    """
    설정을 관리합니다.
    """
    if not show:
        console.print("[yellow]ℹ[/yellow] 사용법: [cyan]resonance config --show[/cyan]")
        return

    manager = ConfigManager()
    config_data = manager.load()
    if config_data.get("GOOGLE_API_KEY"):
        key = config_data["GOOGLE_API_KEY"]
        config_data["GOOGLE_API_KEY"] = key[:4] + "*" * max(0, len(key) - 8) + key[-4:] if len(key) > 8 else "*" * len(key)
    settings = manager.generation_settings()
    console.print(Panel.fit(
        f"[bold cyan]현재 설정[/bold cyan] ({manager.config_path})\n\n"
        f"{json.dumps(config_data, indent=2, ensure_ascii=False)}\n\n"
        f"[bold cyan]Generation settings[/bold cyan]\n\n"
        f"{json.dumps(settings.model_dump(), indent=2, ensure_ascii=False)}",
        border_style="cyan",
    ))


if __name__ == "__main__":
    app()
