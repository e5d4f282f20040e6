"""
Podcast tone definitions
"""
from typing import Optional

from pydantic import BaseModel

from ..core.errors import UnknownToneError


class Tone(BaseModel):
    id: str
    label: str
    description: str


PODCAST_TONES: list[Tone] = [
    Tone(id="philosophical", label="Deep & Philosophical", description="Exploring the existential and spiritual depths."),
    Tone(id="suspense", label="True Crime Suspense", description="Dramatic, tense, and investigative."),
    Tone(id="witty", label="Humorous & Witty", description="Lighthearted, clever, and engaging banter."),
    Tone(id="analytical", label="Academic & Analytical", description="Data-driven and deeply researched."),
    Tone(id="casual", label="Casual Banter", description="Like two friends discussing a great book over coffee."),
]

_TONES_BY_ID = {tone.id: tone for tone in PODCAST_TONES}


def get_tone(tone_id: str) -> Tone:
    """tone id로 Tone을 찾습니다. 없으면 UnknownToneError."""
    try:
        return _TONES_BY_ID[tone_id]
    except KeyError:
        raise UnknownToneError(tone_id) from None


def tone_id_for_label(label: str) -> Optional[str]:
    """tone 라벨만 저장된 예전 아티팩트용 역조회"""
    for tone in PODCAST_TONES:
        if tone.label == label:
            return tone.id
    return None
