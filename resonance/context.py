"""
Application context and progress reporting for series generation runs
"""
import asyncio
import inspect
from typing import Any, Callable, Literal, Optional

from pydantic import BaseModel

from .config import GenerationSettings
from .core.config_manager import ConfigManager
from .core.job_store import JobStore
from .core.notification_store import NotificationStore
from .models.series import Series
from .services.artifact_store import ArtifactStore, JsonArtifactStore
from .services.extraction_service import TextExtractor
from .services.generation_service import GenerationClient, TextGenerator
from .services.text_service import TextService
from .utils.logging import print_warning


class AppContext:
    """
    한 프로세스(또는 세션)가 공유하는 서비스 묶음.
    Job/Notification 저장소는 여기서만 만들고 오케스트레이터에 넘겨 줍니다.
    """

    def __init__(
        self,
        settings: GenerationSettings,
        artifacts: ArtifactStore,
        extractor: Any,
        generator: TextGenerator,
        owner_id: str = "local",
        jobs: Optional[JobStore] = None,
        notifications: Optional[NotificationStore] = None,
        text_cache: Optional[dict[str, str]] = None,
    ):
        self.settings = settings
        self.artifacts = artifacts
        self.extractor = extractor
        self.generator = generator
        self.owner_id = owner_id
        self.jobs = jobs if jobs is not None else JobStore()
        self.notifications = notifications if notifications is not None else NotificationStore()
        self.text_cache: dict[str, str] = text_cache if text_cache is not None else {}

    @property
    def text_service(self) -> TextService:
        return TextService.from_settings(self.settings)

    @classmethod
    def create(
        cls,
        config_manager: Optional[ConfigManager] = None,
        artifacts: Optional[ArtifactStore] = None,
        extractor: Optional[Any] = None,
        generator: Optional[TextGenerator] = None,
    ) -> "AppContext":
        """
        config.json / 환경 변수 설정으로 기본 서비스를 구성합니다.
        테스트에서는 artifacts/extractor/generator를 직접 넘깁니다.
        """
        manager = config_manager or ConfigManager()
        settings = manager.generation_settings()
        if generator is None:
            manager.setup_gemini_api()
            generator = GenerationClient.from_settings(settings)
        return cls(
            settings=settings,
            artifacts=artifacts if artifacts is not None else JsonArtifactStore(manager.data_root),
            extractor=extractor if extractor is not None else TextExtractor.from_settings(settings),
            generator=generator,
            owner_id=str(manager.get("OWNER_ID", "local")),
        )

    def reset(self) -> None:
        """로그아웃: 진행 기록, 알림, 텍스트 캐시를 비웁니다."""
        self.jobs.clear()
        self.notifications.clear()
        self.text_cache.clear()


EventKind = Literal["outline_ready", "episode_ready", "episode_failed", "run_finished"]


class ProgressEvent(BaseModel):
    kind: EventKind
    job_id: str
    episode_number: Optional[int] = None
    episode_title: Optional[str] = None
    series: Optional[Series] = None
    status: Optional[str] = None
    message: Optional[str] = None


class RunCallbacks(BaseModel):
    """호출자가 넘기는 선택적 콜백 (동기 함수나 코루틴 함수 모두 가능)"""

    on_outline: Optional[Callable[[Series], Any]] = None
    on_episode_done: Optional[Callable[[int, str], Any]] = None
    on_episode_failed: Optional[Callable[[int, str], Any]] = None


class ProgressReporter:
    """
    진행 이벤트를 호출자의 asyncio.Queue와 콜백으로 전달합니다.
    콜백 실패는 경고만 남기고 생성 흐름을 막지 않습니다.
    """

    def __init__(
        self,
        job_id: str,
        callbacks: Optional[RunCallbacks] = None,
        events: Optional[asyncio.Queue] = None,
    ):
        self.job_id = job_id
        self.callbacks = callbacks or RunCallbacks()
        self.events = events

    async def _invoke(self, callback: Optional[Callable], *args) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            print_warning(f"Progress callback failed: {e}", context="progress", exception=e)

    async def _emit(self, event: ProgressEvent) -> None:
        if self.events is not None:
            await self.events.put(event)

    async def outline_ready(self, series: Series) -> None:
        await self._emit(ProgressEvent(kind="outline_ready", job_id=self.job_id, series=series))
        await self._invoke(self.callbacks.on_outline, series)

    async def episode_ready(self, number: int, title: str) -> None:
        await self._emit(ProgressEvent(
            kind="episode_ready", job_id=self.job_id, episode_number=number, episode_title=title,
        ))
        await self._invoke(self.callbacks.on_episode_done, number, title)

    async def episode_failed(self, number: int, title: str, message: str) -> None:
        await self._emit(ProgressEvent(
            kind="episode_failed", job_id=self.job_id,
            episode_number=number, episode_title=title, message=message,
        ))
        await self._invoke(self.callbacks.on_episode_failed, number, title)

    async def run_finished(self, status: str, message: str) -> None:
        await self._emit(ProgressEvent(kind="run_finished", job_id=self.job_id, status=status, message=message))
