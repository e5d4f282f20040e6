"""
Text Service: keyword extraction and word-budgeted excerpts of book text
"""
import re
from typing import Optional

from ..core.constants import (
    OUTLINE_MAX_WORDS,
    EPISODE_MAX_WORDS,
    EPISODE_MIN_WORDS,
    OUTLINE_HEAD_RATIO,
    OUTLINE_TAIL_RATIO,
    OUTLINE_MIDDLE_START,
    OUTLINE_MIDDLE_END,
    EPISODE_LOOKBACK_RATIO,
    MIN_PARAGRAPH_CHARS,
    MAX_FOCUS_KEYWORDS,
)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "this", "that", "is", "are", "was", "were",
    "be", "been", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "it", "its", "as", "so", "if",
    "about", "which", "when", "where", "who", "how", "all", "their", "there",
    "they", "them", "then", "than", "into", "also", "what", "his", "her",
})

SEGMENT_MARKER = "..."

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_PARAGRAPH_BREAK_RE = re.compile(r"(?:\r?\n){2,}")


def count_words(text: str) -> int:
    return len(text.split())


def extract_keywords(text: str) -> list[str]:
    """
    contentFocus 같은 짧은 설명에서 의미 있는 토큰만 뽑습니다.

    소문자화 → 영숫자/공백 외 문자 제거 → 공백 분리 → 불용어와 3글자 이하 토큰 제거.
    원래 순서대로 최대 15개를 반환합니다 (중복 제거나 빈도 정렬 없음).
    """
    if not text:
        return []
    cleaned = _NON_ALNUM_RE.sub(" ", text.lower())
    keywords = [w for w in cleaned.split() if len(w) > 3 and w not in STOP_WORDS]
    return keywords[:MAX_FOCUS_KEYWORDS]


def optimize_for_outline(text: str, max_words: int = OUTLINE_MAX_WORDS) -> str:
    """
    아웃라인 생성용: 긴 본문을 max_words 단어 이내로 줄입니다.

    예산을 앞 40% / 가운데 50% / 끝 10%로 나눕니다. 가운데 부분은 본문의
    30%~70% 구간에서 일정한 간격으로 뽑아 구간 전체를 고르게 덮습니다.
    세 부분 사이의 "..." 표시도 단어 수에 포함되므로 가운데 몫에서 뺍니다.
    """
    words = text.split()
    total = len(words)
    if total <= max_words:
        return text

    head_budget = int(max_words * OUTLINE_HEAD_RATIO)
    tail_budget = int(max_words * OUTLINE_TAIL_RATIO)
    middle_budget = max_words - head_budget - tail_budget - 2
    if middle_budget <= 0:
        return " ".join(words[:max_words])

    head = words[:head_budget]

    pool = words[int(total * OUTLINE_MIDDLE_START):int(total * OUTLINE_MIDDLE_END)]
    step = max(1, len(pool) // middle_budget)
    middle = pool[::step][:middle_budget]

    tail = words[total - tail_budget:]

    return " ".join(head + [SEGMENT_MARKER] + middle + [SEGMENT_MARKER] + tail)


def _split_paragraphs(text: str) -> list[str]:
    return [p for p in _PARAGRAPH_BREAK_RE.split(text) if len(p.strip()) > MIN_PARAGRAPH_CHARS]


def _positional_slice(words: list[str], episode_number: int, total_episodes: int, max_words: int) -> str:
    total = len(words)
    ratio = episode_number / max(total_episodes, 1)
    start = int(total * max(0.0, ratio - EPISODE_LOOKBACK_RATIO))
    start = min(start, total - 1)
    end = min(total, start + max_words)
    return " ".join(words[start:end])


def optimize_for_episode(
    full_text: str,
    content_focus: str,
    episode_number: int,
    total_episodes: int,
    max_words: int = EPISODE_MAX_WORDS,
    min_words: int = EPISODE_MIN_WORDS,
) -> str:
    """
    에피소드 스크립트용: contentFocus와 관련된 문단만 골라 max_words 이내로 만듭니다.

    1. contentFocus에서 키워드를 뽑고, 본문을 빈 줄 기준 문단으로 나눕니다 (50자 이하 문단 제외).
    2. 문단마다 키워드 등장 횟수 합으로 점수를 매기고, 점수 높은 순으로 예산을 넘기 직전까지 담습니다.
    3. 담은 단어 수가 min_words 이상이면 원래 문서 순서로 되돌려 빈 줄로 이어 반환합니다.
    4. 키워드가 없거나 신호가 약하면 에피소드 위치 비율로 자른 구간을 반환합니다
       (앞쪽으로 15% 겹쳐서 전환 맥락을 남김).
    """
    words = full_text.split()
    if len(words) <= max_words:
        return full_text

    keywords = extract_keywords(content_focus)
    if keywords:
        patterns = [re.compile(re.escape(kw)) for kw in keywords]
        scored = []
        for index, paragraph in enumerate(_split_paragraphs(full_text)):
            lowered = paragraph.lower()
            score = sum(len(pattern.findall(lowered)) for pattern in patterns)
            if score > 0:
                scored.append((score, index, paragraph))

        scored.sort(key=lambda item: item[0], reverse=True)

        chosen: list[tuple[int, str]] = []
        word_count = 0
        for _, index, paragraph in scored:
            paragraph_words = count_words(paragraph)
            if word_count + paragraph_words > max_words:
                break
            chosen.append((index, paragraph))
            word_count += paragraph_words

        if chosen and word_count >= min_words:
            chosen.sort(key=lambda item: item[0])
            return "\n\n".join(paragraph for _, paragraph in chosen)

    return _positional_slice(words, episode_number, total_episodes, max_words)


class TextService:
    """
    예산 값을 묶어 두고 발췌 함수를 호출하는 서비스 클래스
    """

    def __init__(
        self,
        outline_max_words: int = OUTLINE_MAX_WORDS,
        episode_max_words: int = EPISODE_MAX_WORDS,
        episode_min_words: int = EPISODE_MIN_WORDS,
    ):
        self.outline_max_words = outline_max_words
        self.episode_max_words = episode_max_words
        self.episode_min_words = episode_min_words

    @classmethod
    def from_settings(cls, settings) -> "TextService":
        return cls(
            outline_max_words=settings.outline_max_words,
            episode_max_words=settings.episode_max_words,
            episode_min_words=settings.episode_min_words,
        )

    def outline_excerpt(self, text: str) -> str:
        return optimize_for_outline(text, max_words=self.outline_max_words)

    def episode_excerpt(
        self,
        text: str,
        content_focus: str,
        episode_number: int,
        total_episodes: int,
    ) -> str:
        return optimize_for_episode(
            text,
            content_focus,
            episode_number,
            total_episodes,
            max_words=self.episode_max_words,
            min_words=self.episode_min_words,
        )

    @staticmethod
    def fallback_text(title: str, author: Optional[str]) -> str:
        """추출 실패 시 사용할 메타데이터 전용 텍스트"""
        return f"Title: {title}\nAuthor: {author or 'Unknown'}"
