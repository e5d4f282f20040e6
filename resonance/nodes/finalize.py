"""
Finalize node: terminal job status and the summary notification
"""
from ..context import AppContext, ProgressReporter
from ..state import SeriesState
from ..utils import log_workflow_step_start, log_workflow_step_end


def summarize_run(ready: list[int], failed: list[int]) -> str:
    total = len(ready) + len(failed)
    if not failed:
        return f"All {total} episodes ready!"
    noun = "episode" if len(failed) == 1 else "episodes"
    return f"{len(ready)}/{total} episodes ready, {len(failed)} {noun} failed"


async def finalize_node(state: SeriesState, context: AppContext, reporter: ProgressReporter) -> dict:
    """
    Finalize 노드: 부분 실패가 있어도 run은 done으로 끝납니다.
    실패한 에피소드는 재시도 진입점으로 다시 만들 수 있습니다.
    """
    job_id = state["job_id"]
    book = state["book"]
    tone = state["tone"]
    outcome = state.get("outcome", "generated")
    log_workflow_step_start("finalize", run_id=job_id)
    try:
        if outcome in ("existing", "recovered"):
            message = state.get("message", "Series already generated.")
            context.jobs.update(job_id, status="done", label=message)
            await reporter.run_finished("done", message)
            return {"message": message}

        ready = state.get("ready_episodes", [])
        failed = state.get("failed_episodes", [])
        message = summarize_run(ready, failed)
        context.jobs.update(job_id, status="done", label=message)

        total = len(ready) + len(failed)
        if failed:
            body = (
                f"{len(ready)} of {total} episodes in the {tone.label} series are playable. "
                f"Retry episodes {', '.join(str(n) for n in failed)} from the series page."
            )
        else:
            body = f"All {total} episodes in the {tone.label} series are now playable."
        context.notifications.push(
            type="success",
            title=f'"{book.title}" Complete',
            body=body,
            book_title=book.title,
            book_cover=book.cover_url,
        )
        print(f"\n✓ {message}", flush=True)
        await reporter.run_finished("done", message)
        return {"message": message}
    finally:
        log_workflow_step_end("finalize", run_id=job_id)
