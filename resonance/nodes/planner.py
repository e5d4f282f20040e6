"""
Planner node: series outline generation
"""
from ..context import AppContext, ProgressReporter
from ..core.constants import ARTIFACT_SERIES
from ..models.library import Artifact
from ..models.series import normalize_series
from ..services.generation_service import parse_model_json
from ..services.prompts import build_outline_prompt
from ..state import SeriesState
from ..utils import log_workflow_step_start, log_workflow_step_end


async def planner_node(state: SeriesState, context: AppContext, reporter: ProgressReporter) -> dict:
    """
    Planner 노드: 본문 요약본으로 시리즈 아웃라인을 만들고 저장합니다.

    아웃라인 생성/파싱 실패는 run 전체 실패이므로 예외를 그대로 올립니다.

    Args:
        state: SeriesState (book_text 필요)
        context: AppContext
        reporter: 아웃라인 완료 이벤트를 받을 ProgressReporter

    Returns:
        {"series": Series}
    """
    job_id = state["job_id"]
    book = state["book"]
    tone = state["tone"]
    log_workflow_step_start("planner", run_id=job_id)
    print("\n[Planner] Starting...", flush=True)
    context.jobs.update(job_id, status="planning", label="Architecting series...")

    try:
        content = context.text_service.outline_excerpt(state.get("book_text", ""))
        prompt = build_outline_prompt(book.title, book.author, content, tone.label)
        raw = await context.generator.generate(prompt)
        series = normalize_series(parse_model_json(raw), tone=tone.label, tone_id=tone.id)
        if series.episode_count() == 0:
            raise ValueError("Series outline contains no episodes")

        await context.artifacts.insert(Artifact(
            owner_id=context.owner_id,
            book_id=book.id,
            type=ARTIFACT_SERIES,
            title=f"Series ({tone.label}): {book.title}",
            content=series.to_content(),
        ))
        await context.artifacts.record_generation(context.owner_id, book.id, tone.id)

        print(
            f"  ✓ Outline '{series.title}': {series.total_seasons} season(s), {series.episode_count()} episode(s)",
            flush=True,
        )
        context.notifications.push(
            type="series",
            title=f'"{book.title}": Series Ready',
            body=f'{tone.label} series outline "{series.title}" has been created. Generating episodes now...',
            book_title=book.title,
            book_cover=book.cover_url,
        )
        await reporter.outline_ready(series)
        return {"series": series}
    finally:
        duration = log_workflow_step_end("planner", run_id=job_id)
        print(f"Planner completed (Duration: {duration:.1f}s)", flush=True)
