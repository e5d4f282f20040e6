"""
Constants for the Resonance series generator
모든 튜닝 값과 문자열 상수를 한 곳에서 관리
"""

# 콘텐츠 최적화 (단어 수 기준)
OUTLINE_MAX_WORDS: int = 6000  # 시리즈 아웃라인 프롬프트에 넣을 최대 단어 수
EPISODE_MAX_WORDS: int = 2500  # 에피소드 스크립트 프롬프트당 최대 단어 수
EPISODE_MIN_WORDS: int = 500  # 키워드 발췌가 의미 있다고 볼 최소 단어 수
OUTLINE_HEAD_RATIO: float = 0.4
OUTLINE_TAIL_RATIO: float = 0.1
OUTLINE_MIDDLE_START: float = 0.3
OUTLINE_MIDDLE_END: float = 0.7
EPISODE_LOOKBACK_RATIO: float = 0.15
MIN_PARAGRAPH_CHARS: int = 50
MAX_FOCUS_KEYWORDS: int = 15

# 생성
EPISODE_BATCH_SIZE: int = 3  # 동시에 생성할 에피소드 수
GENERATION_TEMPERATURE: float = 0.7
GENERATION_TIMEOUT_SEC: float = 180.0
MAX_RETRIES_PER_MODEL: int = 2
OVERLOAD_RETRY_BASE_DELAY: float = 5.0  # 503 재시도 대기 (초, 시도 횟수에 비례)
RAW_RESPONSE_EXCERPT_CHARS: int = 500

# Gemini 모델 (앞에서부터 순서대로 시도)
GEMINI_MODEL_PRO: str = "gemini-2.5-pro"
GEMINI_MODEL_FLASH: str = "gemini-2.5-flash"
GEMINI_MODEL_FLASH_LITE: str = "gemini-2.5-flash-lite"
DEFAULT_MODEL_WATERFALL: tuple = (
    GEMINI_MODEL_FLASH,
    GEMINI_MODEL_FLASH_LITE,
    GEMINI_MODEL_PRO,
)

# 텍스트 추출
EXTRACTION_TIMEOUT_SEC: float = 45.0
DOCUMENT_OPEN_TIMEOUT_SEC: float = 30.0
CHAPTER_TIMEOUT_SEC: float = 8.0
PAGE_TIMEOUT_SEC: float = 10.0
MAX_EPUB_CHAPTERS: int = 12
MAX_PDF_PAGES: int = 50
MAX_EXTRACTED_CHARS: int = 50000
DOWNLOAD_TIMEOUT_SEC: float = 30.0

# 일일 생성 한도 (계정당 새 시리즈 수)
DAILY_SERIES_LIMIT: int = 1

# 알림 보관 개수
MAX_NOTIFICATIONS: int = 50

# 끝난 백그라운드 태스크 보관 개수 (wait 결과 조회용)
MAX_FINISHED_TASKS: int = 50

# 아티팩트 타입
ARTIFACT_SERIES: str = "podcast-series"
ARTIFACT_EPISODE: str = "podcast"

# 시즌 구조가 없는 시리즈의 기본 시즌 제목
DEFAULT_SEASON_TITLE: str = "Archive Echoes"

# 파일
ERROR_LOG_FILE: str = "error_log.txt"
ARCHIVE_FILE: str = "archive.json"
TIMING_LOG_DIR: str = "logs"
TIMING_LOG_PREFIX: str = "workflow_timing_"
