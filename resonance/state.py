"""
State definition for the LangGraph series generation pipeline
"""
from typing import Optional, TypedDict

from .models.library import BookRecord
from .models.series import Series
from .models.tones import Tone


class SeriesState(TypedDict, total=False):
    """State schema shared across the graph"""

    # Input
    job_id: str  # 진행 기록 id (타이밍 run_id로도 사용)
    book: BookRecord
    tone: Tone

    # Extract output
    book_text: str  # 추출된 본문 (실패 시 제목/저자만)
    extraction_failed: bool

    # Planner output
    series: Optional[Series]  # 정규화된 아웃라인 (dedup 적중 시 저장된 아웃라인)

    # Episodes output
    ready_episodes: list[int]
    failed_episodes: list[int]

    # Result
    phase: str  # 마지막으로 실행된 노드
    outcome: str  # generated | existing | recovered
    message: str
    errors: list[dict]  # 에피소드 단위 에러 (ErrorHandler 형식)
