"""
FastAPI Server for the Resonance series generator
시리즈 생성 작업, 진행 상태, 알림을 다루는 REST API 서버
"""
import os
import time
from contextlib import asynccontextmanager
from typing import Any, Literal, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .context import AppContext
from .core.errors import GenerationInProgressError, UnknownToneError
from .job_manager import JobManager
from .models.library import BookRecord
from .models.series import normalize_series
from .models.tones import PODCAST_TONES, get_tone
from .services.text_service import count_words, optimize_for_episode, optimize_for_outline


# Pydantic 모델
class BookPayload(BaseModel):
    id: str
    title: str
    author: str = ""
    file_url: str = ""
    file_type: Literal["epub", "pdf"] = "epub"
    source: Literal["upload", "store"] = "upload"
    store_book_id: Optional[str] = None
    cover_url: Optional[str] = None

    def to_record(self, owner_id: str) -> BookRecord:
        return BookRecord(owner_id=owner_id, **self.model_dump())


class SeriesRequest(BaseModel):
    book: BookPayload
    tone_id: str


class RetryRequest(BaseModel):
    book: BookPayload
    tone_id: str
    episodes: list[int] = Field(..., min_length=1)
    series: Optional[dict[str, Any]] = None  # 없으면 저장된 아웃라인 사용
    book_text: Optional[str] = None


class JobResponse(BaseModel):
    job_id: str
    status: str


class OutlineExcerptRequest(BaseModel):
    text: str
    max_words: Optional[int] = Field(None, ge=1)


class EpisodeExcerptRequest(BaseModel):
    text: str
    content_focus: str = ""
    episode_number: int = Field(1, ge=1)
    total_episodes: int = Field(1, ge=1)
    max_words: Optional[int] = Field(None, ge=1)
    min_words: Optional[int] = Field(None, ge=0)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """
    FastAPI 앱을 만듭니다.

    Args:
        context: 사용할 AppContext (없으면 config.json/환경 변수로 생성)
    """
    context = context or AppContext.create()
    manager = JobManager(context)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """서버 시작/종료 처리"""
        print("=" * 70)
        print("Resonance Series API Server Starting...")
        print("=" * 70)
        print(f"✓ Models: {', '.join(context.settings.models)}")
        print(f"✓ Episode batch size: {context.settings.episode_batch_size}")
        print("✓ Server ready to accept requests")
        print("=" * 70)
        yield
        await manager.shutdown()

    app = FastAPI(
        title="Resonance Series API",
        description="AI-generated podcast series from e-books",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.context = context
    app.state.job_manager = manager

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:3000", "*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 로깅 미들웨어
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        print(f"\n[API Request] {request.method} {request.url.path}", flush=True)
        try:
            response = await call_next(request)
        except Exception as e:
            print(f"[API Error] {e}", flush=True)
            raise
        process_time = (time.time() - start_time) * 1000
        print(f"[API Response] {response.status_code} ({process_time:.2f}ms)", flush=True)
        return response

    @app.get("/")
    async def root():
        return {"message": "Resonance Series API", "version": "1.0.0", "status": "running"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.get("/api/v1/tones")
    async def list_tones():
        return {"tones": [tone.model_dump() for tone in PODCAST_TONES]}

    # ── Series generation ────────────────────────────────────────────────

    @app.post("/api/v1/series", response_model=JobResponse, status_code=202)
    async def start_series(request: SeriesRequest):
        """
        시리즈 생성을 백그라운드로 시작합니다.

        Returns:
            job_id (진행 상태는 /api/v1/jobs/{job_id})
        """
        book = request.book.to_record(context.owner_id)
        try:
            get_tone(request.tone_id)
            await context.artifacts.add_book(book)
            job_id = manager.start_series(book, request.tone_id)
        except UnknownToneError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except GenerationInProgressError as e:
            raise HTTPException(status_code=409, detail={"message": str(e), "job_id": e.job_id})
        return JobResponse(job_id=job_id, status="pending")

    @app.post("/api/v1/series/retry", response_model=JobResponse, status_code=202)
    async def retry_series(request: RetryRequest):
        """실패한 에피소드만 다시 생성합니다."""
        book = request.book.to_record(context.owner_id)
        try:
            tone = get_tone(request.tone_id)
        except UnknownToneError as e:
            raise HTTPException(status_code=404, detail=str(e))

        if request.series is not None:
            series = normalize_series(request.series, tone=tone.label, tone_id=tone.id)
        else:
            stored = await context.artifacts.find_series(context.owner_id, book.id, tone)
            if stored is None:
                raise HTTPException(status_code=404, detail="No series outline found for this book and tone")
            series = normalize_series(stored.content, tone=tone.label, tone_id=tone.id)

        try:
            job_id = manager.start_retry(book, series, request.episodes, tone.id, book_text=request.book_text)
        except GenerationInProgressError as e:
            raise HTTPException(status_code=409, detail={"message": str(e), "job_id": e.job_id})
        return JobResponse(job_id=job_id, status="pending")

    # ── Jobs ─────────────────────────────────────────────────────────────

    @app.get("/api/v1/jobs")
    async def list_jobs():
        return {"jobs": [job.model_dump() for job in context.jobs.get_all()]}

    @app.get("/api/v1/jobs/{job_id}")
    async def get_job(job_id: str):
        job = context.jobs.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.model_dump()

    @app.post("/api/v1/jobs/{job_id}/cancel")
    async def cancel_job(job_id: str):
        if context.jobs.get(job_id) is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return {"job_id": job_id, "cancelled": manager.cancel(job_id)}

    @app.delete("/api/v1/jobs/{job_id}")
    async def delete_job(job_id: str):
        if not manager.forget(job_id):
            raise HTTPException(status_code=404, detail="Job not found")
        return {"status": "deleted"}

    # ── Notifications ────────────────────────────────────────────────────

    @app.get("/api/v1/notifications")
    async def list_notifications():
        return {
            "notifications": [n.model_dump() for n in context.notifications.get_all()],
            "unread": context.notifications.unread_count(),
        }

    @app.post("/api/v1/notifications/read-all")
    async def mark_all_notifications_read():
        context.notifications.mark_all_read()
        return {"unread": 0}

    @app.post("/api/v1/notifications/{notification_id}/read")
    async def mark_notification_read(notification_id: str):
        if not context.notifications.mark_read(notification_id):
            raise HTTPException(status_code=404, detail="Notification not found")
        return {"unread": context.notifications.unread_count()}

    @app.delete("/api/v1/notifications")
    async def clear_notifications():
        context.notifications.clear()
        return {"status": "cleared"}

    @app.post("/api/v1/session/reset")
    async def reset_session():
        """로그아웃: 실행 중인 작업을 취소하고 저장소를 비웁니다."""
        await manager.shutdown()
        context.reset()
        return {"status": "reset"}

    # ── Excerpt preview ──────────────────────────────────────────────────

    @app.post("/api/v1/excerpts/outline")
    async def outline_excerpt(request: OutlineExcerptRequest):
        service = context.text_service
        max_words = request.max_words or service.outline_max_words
        excerpt = optimize_for_outline(request.text, max_words=max_words)
        return {
            "excerpt": excerpt,
            "word_count": count_words(excerpt),
            "original_word_count": count_words(request.text),
            "max_words": max_words,
        }

    @app.post("/api/v1/excerpts/episode")
    async def episode_excerpt(request: EpisodeExcerptRequest):
        service = context.text_service
        max_words = request.max_words or service.episode_max_words
        min_words = request.min_words if request.min_words is not None else service.episode_min_words
        excerpt = optimize_for_episode(
            request.text,
            request.content_focus,
            request.episode_number,
            request.total_episodes,
            max_words=max_words,
            min_words=min_words,
        )
        return {
            "excerpt": excerpt,
            "word_count": count_words(excerpt),
            "original_word_count": count_words(request.text),
            "max_words": max_words,
        }

    return app


def main(host: Optional[str] = None, port: Optional[int] = None):
    """서버 실행"""
    port = port or int(os.getenv("PORT", "8000"))
    host = host or os.getenv("HOST", "0.0.0.0")

    uvicorn.run(
        create_app(),
        host=host,
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
