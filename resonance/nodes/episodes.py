"""
Episodes node: batched script generation with per-episode failure isolation
"""
import asyncio

from ..context import AppContext, ProgressReporter
from ..core.constants import ARTIFACT_EPISODE
from ..core.error_handler import ErrorHandler
from ..models.library import Artifact, BookRecord
from ..models.series import Episode, Season, Series, parse_script
from ..models.tones import Tone
from ..services.generation_service import parse_model_json
from ..services.prompts import build_episode_prompt
from ..state import SeriesState
from ..utils import log_workflow_step_start, log_workflow_step_end


async def generate_episode(
    context: AppContext,
    reporter: ProgressReporter,
    book: BookRecord,
    tone: Tone,
    series: Series,
    season: Season,
    episode: Episode,
    book_text: str,
    recovering: bool = False,
) -> bool:
    """
    에피소드 하나의 스크립트를 생성하고 저장합니다.

    실패는 여기서 알림/콜백으로 바꾸고 예외를 올리지 않으므로
    같은 배치의 다른 에피소드에 영향을 주지 않습니다.

    Args:
        recovering: 재시도 작업에서 호출된 경우 True (알림 문구가 달라짐)

    Returns:
        성공 여부
    """
    number = episode.number
    try:
        print(f"  Episode {number}: Generating script...", flush=True)
        excerpt = context.text_service.episode_excerpt(
            book_text,
            episode.content_focus,
            number,
            series.episode_count(),
        )
        previous, following = series.neighbours(number)
        prompt = build_episode_prompt(
            series,
            season,
            episode,
            excerpt,
            previous_recap=previous.description if previous else None,
            next_tease=following.title if following else None,
        )
        raw = await context.generator.generate(prompt)
        script = parse_script(parse_model_json(raw), episode, tone.label)

        content = script.model_dump(by_alias=True)
        content["_toneId"] = tone.id
        content["_toneLabel"] = tone.label
        await context.artifacts.insert(Artifact(
            owner_id=context.owner_id,
            book_id=book.id,
            type=ARTIFACT_EPISODE,
            title=f"{series.title} ({tone.label}) - Ep {number}: {episode.title}",
            content=content,
        ))
    except asyncio.CancelledError:
        raise
    except Exception as e:
        error_info = ErrorHandler.handle_node_error("episodes", e, episode_number=number)
        message = error_info["user_message"]
        if recovering:
            title = f"Retry Failed: Ep {number}"
            body = f'"{episode.title}": {message}'
        else:
            title = f"Episode {number} Failed"
            body = f'"{episode.title}" could not be recorded. {message}'
        context.notifications.push(
            type="error", title=title, body=body, book_title=book.title, book_cover=book.cover_url,
        )
        await reporter.episode_failed(number, episode.title, message)
        return False

    print(f"  ✓ Episode {number}: {len(script.dialogue)} lines", flush=True)
    context.notifications.push(
        type="episode",
        title="Episode Recovered" if recovering else "Episode Ready",
        body=f'Ep {number}: "{episode.title}" from {book.title} is now playable.',
        book_title=book.title,
        book_cover=book.cover_url,
    )
    await reporter.episode_ready(number, episode.title)
    return True


async def episodes_node(state: SeriesState, context: AppContext, reporter: ProgressReporter) -> dict:
    """
    Episodes 노드: 전체 에피소드를 batch_size 단위로 동시에 생성합니다.

    배치 N+1은 배치 N이 모두 끝난 뒤에 시작하므로 동시 요청 수는 batch_size를 넘지 않습니다.
    """
    job_id = state["job_id"]
    book = state["book"]
    tone = state["tone"]
    series = state["series"]
    book_text = state.get("book_text", "")

    log_workflow_step_start("episodes", run_id=job_id)
    print("\n[Episodes] Starting...", flush=True)

    pairs = series.all_episodes()
    total = len(pairs)
    batch_size = max(1, context.settings.episode_batch_size)
    ready: list[int] = []
    failed: list[int] = []

    async def run_one(season: Season, episode: Episode) -> bool:
        context.jobs.update(
            job_id,
            status="generating",
            label=f'Episode {episode.number}/{total}: "{episode.title}"',
        )
        return await generate_episode(context, reporter, book, tone, series, season, episode, book_text)

    try:
        for offset in range(0, total, batch_size):
            batch = pairs[offset:offset + batch_size]
            print(f"[Episodes] Batch {offset // batch_size + 1}: {[ep.number for _, ep in batch]}", flush=True)
            results = await asyncio.gather(
                *(run_one(season, episode) for season, episode in batch),
                return_exceptions=True,
            )
            for (_, episode), result in zip(batch, results):
                if result is True:
                    ready.append(episode.number)
                else:
                    if isinstance(result, BaseException):
                        ErrorHandler.handle_node_error("episodes", result, episode_number=episode.number)
                    failed.append(episode.number)

        if failed:
            print(f"  ⚠ Warning: {len(failed)} episodes failed: {failed}", flush=True)
            print(f"  ✓ {len(ready)} episodes succeeded: {ready}", flush=True)
        else:
            print(f"  ✓ All {len(ready)} episodes generated successfully", flush=True)
        return {"ready_episodes": ready, "failed_episodes": failed, "outcome": "generated"}
    finally:
        duration = log_workflow_step_end("episodes", run_id=job_id)
        print(f"Episodes completed (Duration: {duration:.1f}s)", flush=True)
