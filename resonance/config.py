"""
Configuration management for the Resonance series generator
"""
import os
import sys
import json
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
import google.generativeai as genai
from pydantic import BaseModel, Field

from .core.constants import (
    OUTLINE_MAX_WORDS,
    EPISODE_MAX_WORDS,
    EPISODE_MIN_WORDS,
    EPISODE_BATCH_SIZE,
    GENERATION_TEMPERATURE,
    GENERATION_TIMEOUT_SEC,
    EXTRACTION_TIMEOUT_SEC,
    DOCUMENT_OPEN_TIMEOUT_SEC,
    CHAPTER_TIMEOUT_SEC,
    PAGE_TIMEOUT_SEC,
    MAX_EXTRACTED_CHARS,
    DAILY_SERIES_LIMIT,
    DEFAULT_MODEL_WATERFALL,
)

load_dotenv()

# Application path handling
if getattr(sys, "frozen", False):
    # PyInstaller로 빌드된 경우
    application_path = Path(sys.executable).parent
else:
    application_path = Path(__file__).parent.parent

CONFIG_PATH = Path(os.getenv("RESONANCE_CONFIG_PATH", str(application_path / "config.json")))

# JSON 아카이브와 로그가 저장되는 폴더
DATA_ROOT = Path(os.getenv("RESONANCE_DATA_DIR", str(application_path / "data")))
LOG_DIR = Path(os.getenv("RESONANCE_LOG_DIR", str(application_path)))

DEFAULT_CONFIG = {
    "OWNER_ID": "local",
    "generation": {},
}


class GenerationSettings(BaseModel):
    """Tuning knobs for extraction, excerpting and generation."""

    outline_max_words: int = Field(OUTLINE_MAX_WORDS, ge=1)
    episode_max_words: int = Field(EPISODE_MAX_WORDS, ge=1)
    episode_min_words: int = Field(EPISODE_MIN_WORDS, ge=0)
    episode_batch_size: int = Field(EPISODE_BATCH_SIZE, ge=1)
    temperature: float = Field(GENERATION_TEMPERATURE, ge=0.0, le=2.0)
    generation_timeout_seconds: Optional[float] = GENERATION_TIMEOUT_SEC
    extraction_timeout_seconds: float = EXTRACTION_TIMEOUT_SEC
    document_open_timeout_seconds: float = DOCUMENT_OPEN_TIMEOUT_SEC
    chapter_timeout_seconds: float = CHAPTER_TIMEOUT_SEC
    page_timeout_seconds: float = PAGE_TIMEOUT_SEC
    max_extracted_chars: int = MAX_EXTRACTED_CHARS
    daily_series_limit: Optional[int] = DAILY_SERIES_LIMIT
    models: list[str] = Field(default_factory=lambda: list(DEFAULT_MODEL_WATERFALL))


def load_config(path: Optional[Path] = None) -> dict:
    """config.json에서 설정 로드 (없으면 기본값으로 생성)"""
    path = path or CONFIG_PATH
    config: dict = {}

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            print(f"✗ Failed to load config from {path}: {e}", flush=True)
    else:
        config = json.loads(json.dumps(DEFAULT_CONFIG))
        try:
            save_config(config, path)
        except OSError as e:
            print(f"⚠ Could not create default config: {e}", flush=True)

    for key, value in DEFAULT_CONFIG.items():
        config.setdefault(key, value)
    return config


def save_config(config: dict, path: Optional[Path] = None) -> str:
    """설정을 config.json에 저장"""
    path = path or CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, ensure_ascii=False)
    print(f"✓ Configuration saved to: {path}", flush=True)
    return str(path)


def _env_overrides() -> dict[str, Any]:
    """RESONANCE_<FIELD> 환경 변수를 GenerationSettings 필드로 매핑"""
    overrides: dict[str, Any] = {}
    for name in GenerationSettings.model_fields:
        raw = os.getenv(f"RESONANCE_{name.upper()}")
        if raw is None or raw == "":
            continue
        if name == "models":
            overrides[name] = [m.strip() for m in raw.split(",") if m.strip()]
        elif name == "daily_series_limit" and raw.lower() in ("none", "off", "0"):
            overrides[name] = None
        else:
            overrides[name] = raw
    return overrides


def build_generation_settings(config: Optional[dict] = None) -> GenerationSettings:
    """
    기본값 → config.json의 "generation" 블록 → 환경 변수 순서로 설정을 합칩니다.
    """
    values: dict[str, Any] = {}
    if config:
        values.update(config.get("generation") or {})
    values.update(_env_overrides())
    return GenerationSettings(**values)


def initialize_api_keys(config: Optional[dict] = None) -> Optional[str]:
    """
    Gemini API 키를 찾아서 설정합니다.

    우선순위: GOOGLE_API_KEY → GEMINI_API_KEY → config.json의 GOOGLE_API_KEY

    Returns:
        설정된 API 키 (없으면 None)
    """
    api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    if not api_key and config:
        api_key = config.get("GOOGLE_API_KEY")
    if api_key:
        genai.configure(api_key=api_key)
    return api_key
