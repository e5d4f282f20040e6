"""
Generation Service: Gemini text generation with a model waterfall,
plus a tolerant JSON parser for model output.
"""
import asyncio
import json
import re
from typing import Any, Optional, Protocol, Sequence

import google.generativeai as genai
from google.api_core import exceptions

from ..core.constants import (
    DEFAULT_MODEL_WATERFALL,
    GENERATION_TEMPERATURE,
    GENERATION_TIMEOUT_SEC,
    MAX_RETRIES_PER_MODEL,
    OVERLOAD_RETRY_BASE_DELAY,
    RAW_RESPONSE_EXCERPT_CHARS,
)
from ..core.errors import GenerationError, ModelResponseParseError
from ..utils.logging import log_error


class TextGenerator(Protocol):
    """Anything that turns a prompt into raw (possibly malformed JSON) text."""

    async def generate(self, prompt: str) -> str:
        ...


# ---------------------------------------------------------------------------
# JSON repair
# ---------------------------------------------------------------------------

_FENCE_START_RE = re.compile(r"^```(?:json)?", re.IGNORECASE)
_FENCE_END_RE = re.compile(r"```$")
_OUTER_JSON_RE = re.compile(r"\{.*\}|\[.*\]", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def _strip_fences(text: str) -> str:
    clean = text.strip()
    clean = _FENCE_START_RE.sub("", clean, count=1)
    clean = _FENCE_END_RE.sub("", clean.rstrip())
    return clean.strip()


def _closes_string(text: str, index: int) -> bool:
    """text[index]의 따옴표 뒤에 구조 문자(, } ] :)나 끝이 오면 문자열 종료로 봅니다."""
    j = index + 1
    while j < len(text) and text[j] in " \t\r\n":
        j += 1
    return j >= len(text) or text[j] in ",}]:"


def repair_json_strings(text: str) -> str:
    """
    JSON 문자열 값 안의 흔한 LLM 실수를 고칩니다.

    - 이스케이프되지 않은 내부 큰따옴표 → 작은따옴표
    - 문자열 안의 줄바꿈/탭/제어 문자 → 공백
    """
    out: list[str] = []
    in_string = False
    escaped = False
    for index, char in enumerate(text):
        if not in_string:
            out.append(char)
            if char == '"':
                in_string = True
            continue

        if escaped:
            out.append(char)
            escaped = False
        elif char == "\\":
            out.append(char)
            escaped = True
        elif char == '"':
            if _closes_string(text, index):
                out.append(char)
                in_string = False
            else:
                out.append("'")
        elif ord(char) < 0x20:
            out.append(" ")
        else:
            out.append(char)
    return "".join(out)


def parse_model_json(raw_text: str) -> Any:
    """
    LLM 응답에서 JSON을 최대한 복구해서 파싱합니다.

    1. 마크다운 코드 펜스 제거
    2. 가장 바깥쪽 {...} 또는 [...] 추출
    3. 닫는 괄호 앞의 trailing comma 제거
    4. 파싱 시도 → 실패하면 문자열 복구 후 한 번 더 시도

    Raises:
        ModelResponseParseError: 복구 후에도 파싱 실패 (원문 앞 500자 포함)
    """
    clean = _strip_fences(raw_text or "")
    match = _OUTER_JSON_RE.search(clean)
    candidate = match.group(0) if match else clean
    candidate = _TRAILING_COMMA_RE.sub(r"\1", candidate)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as first_error:
        repaired = repair_json_strings(candidate)
        try:
            return json.loads(repaired)
        except json.JSONDecodeError:
            excerpt = (raw_text or "")[:RAW_RESPONSE_EXCERPT_CHARS]
            log_error(
                f"Failed to extract valid JSON from model response: {first_error}",
                context="parse_model_json",
            )
            raise ModelResponseParseError(
                f"Failed to extract valid JSON from the AI response ({first_error.msg}).",
                raw_excerpt=excerpt,
            ) from first_error


# ---------------------------------------------------------------------------
# Gemini client
# ---------------------------------------------------------------------------

def _is_overloaded(error: BaseException) -> bool:
    if isinstance(error, (exceptions.ServiceUnavailable, exceptions.DeadlineExceeded, asyncio.TimeoutError)):
        return True
    message = str(error).lower()
    return "503" in message or "overloaded" in message or "overwhelmed" in message


def _is_rate_limited(error: BaseException) -> bool:
    if isinstance(error, exceptions.ResourceExhausted):
        return True
    message = str(error).lower()
    return "429" in message or "quota" in message


class GenerationClient:
    """
    순서가 정해진 Gemini 모델 목록을 차례로 시도하는 생성 클라이언트.

    모델별로:
    - 503/과부하/타임아웃 → 같은 모델로 최대 max_retries_per_model번 재시도 (5초 × 시도 횟수 대기)
    - 429/쿼터 초과 → 곧바로 다음 모델
    - 그 밖의 에러 → 다음 모델
    모든 모델이 실패하면 마지막 업스트림 메시지로 GenerationError를 던집니다.
    """

    def __init__(
        self,
        models: Sequence[str] = DEFAULT_MODEL_WATERFALL,
        temperature: float = GENERATION_TEMPERATURE,
        timeout_seconds: Optional[float] = GENERATION_TIMEOUT_SEC,
        max_retries_per_model: int = MAX_RETRIES_PER_MODEL,
        retry_base_delay: float = OVERLOAD_RETRY_BASE_DELAY,
        model_factory=None,
    ):
        if not models:
            raise ValueError("At least one model is required")
        self.models = list(models)
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self.max_retries_per_model = max_retries_per_model
        self.retry_base_delay = retry_base_delay
        self._model_factory = model_factory or self._default_model_factory
        self._model_cache: dict[str, Any] = {}

    @classmethod
    def from_settings(cls, settings) -> "GenerationClient":
        return cls(
            models=settings.models,
            temperature=settings.temperature,
            timeout_seconds=settings.generation_timeout_seconds,
        )

    @staticmethod
    def _default_model_factory(model_name: str):
        full_name = model_name if model_name.startswith("models/") else f"models/{model_name}"
        return genai.GenerativeModel(full_name)

    def _get_model(self, model_name: str):
        if model_name not in self._model_cache:
            self._model_cache[model_name] = self._model_factory(model_name)
        return self._model_cache[model_name]

    async def _call_model(self, model_name: str, prompt: str) -> str:
        model = self._get_model(model_name)
        generation_config = genai.types.GenerationConfig(
            temperature=self.temperature,
            response_mime_type="application/json",
        )
        call = model.generate_content_async(prompt, generation_config=generation_config)
        if self.timeout_seconds is None:
            response = await call
        else:
            response = await asyncio.wait_for(call, timeout=self.timeout_seconds)
        return (response.text or "").strip()

    async def generate(self, prompt: str) -> str:
        last_error: Optional[BaseException] = None

        for model_name in self.models:
            retries = 0
            while retries <= self.max_retries_per_model:
                try:
                    print(f"  [Gemini] Generating with {model_name}...", flush=True)
                    return await self._call_model(model_name, prompt)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    last_error = e

                    if _is_rate_limited(e):
                        print(f"  ⚠ [Gemini] {model_name} hit rate limit (429). Falling back to next model...", flush=True)
                        break
                    if not _is_overloaded(e):
                        log_error(f"{model_name} failed: {e}", context="generation_client", exception=e)
                        print(f"  ⚠ [Gemini] {model_name} failed ({type(e).__name__}). Trying next model...", flush=True)
                        break

                    retries += 1
                    if retries <= self.max_retries_per_model:
                        delay = self.retry_base_delay * retries
                        print(
                            f"  ⏱️  [Gemini] {model_name} overloaded. Retrying in {delay:.1f}s... "
                            f"(Attempt {retries}/{self.max_retries_per_model})",
                            flush=True,
                        )
                        await asyncio.sleep(delay)
                    else:
                        print(f"  ⚠ [Gemini] {model_name} exhausted retries. Falling back to next model...", flush=True)

        message = str(last_error) if last_error else "Complete API failure across all fallback models."
        raise GenerationError(message or type(last_error).__name__)
