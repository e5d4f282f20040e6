"""
Job Manager for the Resonance series generator
작업 실행, 진행 상태, 백그라운드 태스크 관리
"""
import asyncio
import uuid
from typing import Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field

from .context import AppContext, ProgressReporter, RunCallbacks
from .core.constants import MAX_FINISHED_TASKS
from .core.error_handler import ErrorHandler, classify_generation_error
from .core.errors import GenerationInProgressError
from .core.job_store import GenerationJob
from .graph import create_series_graph
from .models.library import BookRecord
from .models.series import Series, normalize_series
from .models.tones import Tone, get_tone
from .nodes.episodes import generate_episode
from .nodes.extract import load_book_text
from .state import SeriesState
from .utils import (
    clear_workflow_timing,
    get_workflow_timing_summary,
    log_error,
    log_workflow_step_end,
    log_workflow_step_start,
    save_workflow_timing_log,
)

CANCELLED_LABEL = "Cancelled"


class RunResult(BaseModel):
    """한 번의 생성(또는 재시도) 실행 결과"""

    job_id: str
    status: Literal["done", "error"]
    outcome: Literal["generated", "existing", "recovered", "failed"]
    series: Optional[Series] = None
    ready: list[int] = Field(default_factory=list)
    failed: list[int] = Field(default_factory=list)
    message: str = ""


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


class JobManager:
    """
    작업 관리자

    AppContext의 JobStore/NotificationStore에 진행 상황을 기록하고,
    start_* 메서드는 실행을 asyncio 백그라운드 태스크로 띄웁니다.
    """

    def __init__(self, context: AppContext):
        self.context = context
        self._tasks: dict[str, asyncio.Task] = {}

    # ── Job bookkeeping ──────────────────────────────────────────────────

    def _create_job(self, book: BookRecord, tone: Tone, kind: str, status: str, label: str) -> GenerationJob:
        prefix = "retry-" if kind == "retry" else ""
        job = GenerationJob(
            id=f"{prefix}{book.id}-{tone.id}-{uuid.uuid4().hex[:8]}",
            book_id=book.id,
            book_title=book.title,
            book_cover=book.cover_url,
            tone=tone.label,
            tone_id=tone.id,
            kind=kind,
            status=status,
            label=label,
        )
        self.context.jobs.add(job)
        return job

    def _ensure_idle(self, book: BookRecord, tone: Tone) -> None:
        active = self.context.jobs.active_for(book.id, tone.id)
        if active is not None:
            raise GenerationInProgressError(active.id)

    def _prune_tasks(self) -> None:
        """
        끝난 태스크를 정리합니다.
        JobStore에서 지워진 작업은 바로, 나머지는 최근 MAX_FINISHED_TASKS개만 남깁니다.
        """
        finished = [job_id for job_id, task in self._tasks.items() if task.done()]
        for job_id in finished:
            if self.context.jobs.get(job_id) is None:
                self._tasks.pop(job_id)
        finished = [job_id for job_id in finished if job_id in self._tasks]
        for job_id in finished[: max(0, len(finished) - MAX_FINISHED_TASKS)]:
            self._tasks.pop(job_id)

    def _spawn(self, job_id: str, coro) -> None:
        self._prune_tasks()
        task = asyncio.create_task(coro, name=f"resonance-{job_id}")
        self._tasks[job_id] = task

        def _done(finished: asyncio.Task) -> None:
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                log_error(f"Background job {job_id} crashed: {error}", context="job_manager", exception=error)

        task.add_done_callback(_done)

    def _mark_cancelled(self, job_id: str) -> None:
        self.context.jobs.update(job_id, status="error", label=CANCELLED_LABEL, error=CANCELLED_LABEL)

    def _finish_timing(self, job_id: str) -> None:
        summary = get_workflow_timing_summary(job_id)
        if summary:
            steps = ", ".join(f"{name} {info['duration_seconds']:.1f}s" for name, info in summary.items())
            print(f"  ⏱️  Job {job_id} timing: {steps}", flush=True)
            save_workflow_timing_log(job_id)
        clear_workflow_timing(job_id)

    # ── Full series ──────────────────────────────────────────────────────

    async def run_full_series(
        self,
        book: BookRecord,
        tone_id: str,
        callbacks: Optional[RunCallbacks] = None,
        events: Optional[asyncio.Queue] = None,
        job_id: Optional[str] = None,
    ) -> RunResult:
        """
        전체 시리즈 생성 실행 (dedup → extract → planner → episodes → finalize)

        에피소드 단위 실패는 결과의 failed 목록으로만 남고 run은 done으로 끝납니다.
        아웃라인 실패 등 run 전체 실패는 job을 error로 바꾸고 알림 하나를 남깁니다.

        Raises:
            UnknownToneError: tone_id가 잘못된 경우
            GenerationInProgressError: job_id 없이 호출했는데 같은 (책, 톤) 작업이 진행 중인 경우
        """
        tone = get_tone(tone_id)
        if job_id is None:
            self._ensure_idle(book, tone)
            job_id = self._create_job(book, tone, "series", "pending", "Checking archive...").id

        reporter = ProgressReporter(job_id, callbacks, events)
        app = create_series_graph(self.context, reporter)

        initial_state: SeriesState = {
            "job_id": job_id,
            "book": book,
            "tone": tone,
            "series": None,
            "ready_episodes": [],
            "failed_episodes": [],
            "errors": [],
        }
        final_state: dict = dict(initial_state)

        print(f"\n[Job {job_id}] {book.title} ({tone.label})", flush=True)
        try:
            async for output in app.astream(initial_state):
                # output은 {node_name: state_update} 형태
                for node_name, state_update in output.items():
                    print(f"Job {job_id} - Node completed: {node_name}", flush=True)
                    if isinstance(state_update, dict):
                        final_state.update(state_update)
        except asyncio.CancelledError:
            self._mark_cancelled(job_id)
            await reporter.run_finished("error", CANCELLED_LABEL)
            raise
        except Exception as e:
            ErrorHandler.handle_node_error(final_state.get("phase") or "series", e, context=f"job {job_id}")
            message = classify_generation_error(e)
            self.context.jobs.update(job_id, status="error", label=message, error=str(e))
            self.context.notifications.push(
                type="error",
                title="Series Generation Failed",
                body=f"{book.title} ({tone.label}): {message}",
                book_title=book.title,
                book_cover=book.cover_url,
            )
            await reporter.run_finished("error", message)
            return RunResult(
                job_id=job_id,
                status="error",
                outcome="failed",
                series=final_state.get("series"),
                message=message,
            )
        finally:
            self._finish_timing(job_id)

        return RunResult(
            job_id=job_id,
            status="done",
            outcome=final_state.get("outcome", "generated"),
            series=final_state.get("series"),
            ready=final_state.get("ready_episodes", []),
            failed=final_state.get("failed_episodes", []),
            message=final_state.get("message", ""),
        )

    def start_series(
        self,
        book: BookRecord,
        tone_id: str,
        callbacks: Optional[RunCallbacks] = None,
        events: Optional[asyncio.Queue] = None,
    ) -> str:
        """
        run_full_series를 백그라운드 태스크로 시작합니다 (실행 중인 이벤트 루프 필요).

        Returns:
            job id

        Raises:
            UnknownToneError, GenerationInProgressError
        """
        tone = get_tone(tone_id)
        self._ensure_idle(book, tone)
        job = self._create_job(book, tone, "series", "pending", "Checking archive...")
        self._spawn(job.id, self.run_full_series(book, tone_id, callbacks, events, job_id=job.id))
        return job.id

    # ── Retry failed subset ──────────────────────────────────────────────

    async def _resolve_text(self, book: BookRecord, book_text: Optional[str]) -> str:
        if book_text:
            return book_text
        cached = self.context.text_cache.get(book.id)
        if cached:
            return cached
        text, _ = await load_book_text(self.context, book)
        return text

    async def retry_failed_episodes(
        self,
        book: BookRecord,
        series: Union[Series, dict],
        failed_numbers: Iterable[int],
        tone_id: str,
        book_text: Optional[str] = None,
        callbacks: Optional[RunCallbacks] = None,
        events: Optional[asyncio.Queue] = None,
        job_id: Optional[str] = None,
    ) -> RunResult:
        """
        실패한 에피소드만 순서대로 다시 생성합니다.

        이미 스크립트가 저장된 에피소드는 건너뛰므로 중복 저장이 생기지 않습니다.
        모두 복구되면 done, 하나라도 남으면 error ("N episodes still failing")로 끝납니다.
        """
        tone = get_tone(tone_id)
        if not isinstance(series, Series):
            series = normalize_series(series, tone=tone.label, tone_id=tone.id)
        numbers = sorted(set(failed_numbers))

        if not numbers:
            message = "No failed episodes to retry."
            if job_id is not None:
                self.context.jobs.update(job_id, status="done", label=message)
            return RunResult(
                job_id=job_id or "",
                status="done",
                outcome="recovered",
                series=series,
                message=message,
            )

        if job_id is None:
            job_id = self._create_job(
                book, tone, "retry", "generating", f"Retrying {_plural(len(numbers), 'failed episode')}..."
            ).id
        else:
            self.context.jobs.update(job_id, status="generating")

        reporter = ProgressReporter(job_id, callbacks, events)
        targets = [(season, ep) for season, ep in series.all_episodes() if ep.number in numbers]
        unknown = set(numbers) - {ep.number for _, ep in targets}
        for number in sorted(unknown):
            ErrorHandler.handle_warning("retry", "Not in the series outline, skipped", episode_number=number)

        if not targets:
            message = "None of the requested episodes are in the series outline"
            self.context.jobs.update(job_id, status="error", label=message, error=message)
            print(f"  ✗ {message}", flush=True)
            await reporter.run_finished("error", message)
            return RunResult(job_id=job_id, status="error", outcome="failed", series=series,
                             failed=numbers, message=message)

        ready: list[int] = []
        failed: list[int] = []
        log_workflow_step_start("retry", run_id=job_id)
        print(f"\n[Retry] {book.title} ({tone.label}): episodes {numbers}", flush=True)
        try:
            text = await self._resolve_text(book, book_text)
            for season, episode in targets:
                existing = await self.context.artifacts.find_episode(
                    self.context.owner_id, book.id, tone, episode.number
                )
                if existing is not None:
                    print(f"  → Episode {episode.number} already has a script, skipped", flush=True)
                    ready.append(episode.number)
                    continue

                self.context.jobs.update(job_id, label=f'Retrying Ep {episode.number}: "{episode.title}"')
                ok = await generate_episode(
                    self.context, reporter, book, tone, series, season, episode, text, recovering=True,
                )
                (ready if ok else failed).append(episode.number)
        except asyncio.CancelledError:
            self._mark_cancelled(job_id)
            await reporter.run_finished("error", CANCELLED_LABEL)
            raise
        except Exception as e:
            ErrorHandler.handle_node_error("retry", e, context=f"job {job_id}")
            message = classify_generation_error(e)
            self.context.jobs.update(job_id, status="error", label=message, error=str(e))
            await reporter.run_finished("error", message)
            return RunResult(job_id=job_id, status="error", outcome="failed", series=series,
                             ready=ready, failed=failed, message=message)
        finally:
            log_workflow_step_end("retry", run_id=job_id)
            self._finish_timing(job_id)

        if not failed:
            message = f"All {_plural(len(ready), 'episode')} recovered!"
            self.context.jobs.update(job_id, status="done", label=message)
            self.context.notifications.push(
                type="success",
                title=f'"{book.title}": Recovery Complete',
                body="All previously failed episodes are now playable.",
                book_title=book.title,
                book_cover=book.cover_url,
            )
            status = "done"
        else:
            message = f"{_plural(len(failed), 'episode')} still failing"
            self.context.jobs.update(job_id, status="error", label=message, error=message)
            status = "error"

        print(f"  {'✓' if status == 'done' else '⚠'} {message}", flush=True)
        await reporter.run_finished(status, message)
        return RunResult(
            job_id=job_id,
            status=status,
            outcome="recovered" if status == "done" else "failed",
            series=series,
            ready=ready,
            failed=failed,
            message=message,
        )

    def start_retry(
        self,
        book: BookRecord,
        series: Union[Series, dict],
        failed_numbers: Iterable[int],
        tone_id: str,
        book_text: Optional[str] = None,
        callbacks: Optional[RunCallbacks] = None,
        events: Optional[asyncio.Queue] = None,
    ) -> str:
        """retry_failed_episodes를 백그라운드 태스크로 시작합니다."""
        tone = get_tone(tone_id)
        numbers = sorted(set(failed_numbers))
        if not numbers:
            raise ValueError("At least one episode number is required to retry")
        self._ensure_idle(book, tone)
        job = self._create_job(
            book, tone, "retry", "pending", f"Retrying {_plural(len(numbers), 'failed episode')}..."
        )
        self._spawn(
            job.id,
            self.retry_failed_episodes(
                book, series, numbers, tone_id,
                book_text=book_text, callbacks=callbacks, events=events, job_id=job.id,
            ),
        )
        return job.id

    # ── Task control ─────────────────────────────────────────────────────

    def is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    def cancel(self, job_id: str) -> bool:
        """
        백그라운드 작업을 취소합니다. job은 error ("Cancelled")로 끝납니다.

        Returns:
            취소할 태스크가 있었으면 True
        """
        task = self._tasks.get(job_id)
        if task is None or task.done():
            return False
        task.cancel()
        self._mark_cancelled(job_id)
        print(f"  ⚠ Job {job_id} cancelled", flush=True)
        return True

    def forget(self, job_id: str) -> bool:
        """작업을 취소(실행 중이면)하고 JobStore에서 지웁니다."""
        self.cancel(job_id)
        self._tasks.pop(job_id, None)
        return self.context.jobs.remove(job_id)

    async def wait(self, job_id: str) -> Optional[RunResult]:
        """
        백그라운드 작업이 끝날 때까지 기다립니다.

        Returns:
            RunResult (취소되었거나 태스크가 없으면 None)
        """
        task = self._tasks.get(job_id)
        if task is None:
            return None
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    async def shutdown(self) -> None:
        """실행 중인 모든 태스크를 취소하고 정리합니다."""
        tasks = list(self._tasks.items())
        for job_id, task in tasks:
            if not task.done():
                task.cancel()
                self._mark_cancelled(job_id)
        if tasks:
            await asyncio.gather(*(task for _, task in tasks), return_exceptions=True)
        self._tasks.clear()
