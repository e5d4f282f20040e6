"""
Job Store: process-local progress records for running generations
구독자(listener)에게 변경될 때마다 스냅샷을 전달합니다.
"""
import time
from typing import Callable, Literal, Optional

from pydantic import BaseModel, Field

from ..utils.logging import print_warning

JobState = Literal["pending", "extracting", "planning", "generating", "done", "error"]
TERMINAL_STATUSES = ("done", "error")


class GenerationJob(BaseModel):
    """진행 중인 생성 작업 하나 (프로세스 재시작 시 사라짐)"""

    id: str
    book_id: str
    book_title: str
    book_cover: Optional[str] = None
    tone: str
    tone_id: str
    kind: Literal["series", "retry"] = "series"
    status: JobState = "pending"
    label: str = ""
    error: Optional[str] = None
    created_at: float = Field(default_factory=time.time)
    updated_at: float = Field(default_factory=time.time)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


JobListener = Callable[[list[GenerationJob]], None]


class JobStore:
    """
    작업 상태 저장소
    AppContext가 소유하며 전역 싱글톤으로 쓰지 않습니다.
    """

    def __init__(self):
        self._jobs: dict[str, GenerationJob] = {}
        self._listeners: list[JobListener] = []

    def subscribe(self, listener: JobListener) -> Callable[[], None]:
        """
        listener를 등록합니다.

        Returns:
            호출하면 구독을 해제하는 함수
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.get_all()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                print_warning(f"Job listener failed: {e}", context="job_store", exception=e)

    def add(self, job: GenerationJob) -> None:
        self._jobs[job.id] = job
        self._notify()

    def update(self, job_id: str, **patch) -> Optional[GenerationJob]:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        updated = job.model_copy(update={**patch, "updated_at": time.time()})
        self._jobs[job_id] = updated
        self._notify()
        return updated

    def remove(self, job_id: str) -> bool:
        removed = self._jobs.pop(job_id, None) is not None
        if removed:
            self._notify()
        return removed

    def get(self, job_id: str) -> Optional[GenerationJob]:
        return self._jobs.get(job_id)

    def get_all(self) -> list[GenerationJob]:
        return [job.model_copy() for job in self._jobs.values()]

    def active_for(self, book_id: str, tone_id: str) -> Optional[GenerationJob]:
        """같은 (책, 톤) 조합의 끝나지 않은 작업"""
        for job in self._jobs.values():
            if job.book_id == book_id and job.tone_id == tone_id and not job.is_terminal:
                return job
        return None

    def clear(self) -> None:
        self._jobs.clear()
        self._notify()
