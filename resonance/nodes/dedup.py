"""
Dedup nodes: skip generation when this account (or any other) already has the series
"""
from ..context import AppContext
from ..core.error_handler import ErrorHandler
from ..core.errors import DailyLimitReachedError
from ..models.series import normalize_series
from ..state import SeriesState
from ..utils import log_workflow_step_start, log_workflow_step_end


async def dedup_local_node(state: SeriesState, context: AppContext) -> dict:
    """
    Dedup (local) 노드: 같은 계정에 (책, 톤) 시리즈가 이미 있으면 생성 없이 끝냅니다.
    """
    job_id = state["job_id"]
    book = state["book"]
    tone = state["tone"]
    log_workflow_step_start("dedup_local", run_id=job_id)
    print("\n[Dedup] Checking local archive...", flush=True)
    try:
        existing = await context.artifacts.find_series(context.owner_id, book.id, tone)
        if existing is None:
            print("  → No local series found", flush=True)
            return {"phase": "dedup_local"}

        series = normalize_series(existing.content, tone=tone.label, tone_id=tone.id)
        print(f"  ✓ Series already generated: {series.title}", flush=True)
        context.notifications.push(
            type="info",
            title=f'"{book.title}" Already Generated',
            body=f'The {tone.label} series "{series.title}" is already in your archive.',
            book_title=book.title,
            book_cover=book.cover_url,
        )
        return {
            "outcome": "existing",
            "series": series,
            "message": "Series already generated.",
        }
    finally:
        log_workflow_step_end("dedup_local", run_id=job_id)


async def dedup_shared_node(state: SeriesState, context: AppContext) -> dict:
    """
    Dedup (shared) 노드: 다른 계정이 만든 같은 책 + 톤 시리즈를 복사해 옵니다.
    복사 중 에러는 경고만 남기고 새로 생성하는 쪽으로 넘어갑니다.
    """
    job_id = state["job_id"]
    book = state["book"]
    tone = state["tone"]
    log_workflow_step_start("dedup_shared", run_id=job_id)
    print("[Dedup] Checking shared archive...", flush=True)
    try:
        try:
            copied = await context.artifacts.copy_shared_artifacts(
                context.owner_id, book.id, tone, book.identity()
            )
        except Exception as e:
            ErrorHandler.handle_warning(
                "dedup_shared",
                f"Shared archive copy failed, generating fresh: {e}",
                exception=e,
            )
            return {"phase": "dedup_shared"}

        if not copied:
            print("  → No shared series found", flush=True)
            return {"phase": "dedup_shared"}

        recovered = await context.artifacts.find_series(context.owner_id, book.id, tone)
        series = normalize_series(recovered.content, tone=tone.label, tone_id=tone.id) if recovered else None
        print("  ✓ Recovered series from shared archive", flush=True)
        context.notifications.push(
            type="success",
            title=f'"{book.title}" Recovered',
            body=f"The {tone.label} series was copied from the shared archive. No new generation needed.",
            book_title=book.title,
            book_cover=book.cover_url,
        )
        return {
            "outcome": "recovered",
            "series": series,
            "message": "Recovered from the shared archive.",
        }
    finally:
        log_workflow_step_end("dedup_shared", run_id=job_id)


async def quota_gate_node(state: SeriesState, context: AppContext) -> dict:
    """
    하루 생성 한도를 확인합니다. dedup 적중은 한도에 포함되지 않습니다.

    Raises:
        DailyLimitReachedError: 오늘 한도를 모두 사용한 경우
    """
    limit = context.settings.daily_series_limit
    if limit is None:
        return {"phase": "quota_gate"}
    used = await context.artifacts.count_generations_today(context.owner_id)
    if used >= limit:
        print(f"  ✗ Daily limit reached ({used}/{limit})", flush=True)
        raise DailyLimitReachedError(limit)
    return {"phase": "quota_gate"}
