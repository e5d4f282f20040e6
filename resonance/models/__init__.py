"""
Data models for the Resonance series generator
"""
from .tones import PODCAST_TONES, Tone, get_tone, tone_id_for_label
from .series import (
    DialogueLine,
    GeneratedScript,
    Episode,
    Season,
    Series,
    normalize_series,
    parse_script,
)
from .library import Artifact, BookIdentity, BookRecord

__all__ = [
    "PODCAST_TONES",
    "Tone",
    "get_tone",
    "tone_id_for_label",
    "DialogueLine",
    "GeneratedScript",
    "Episode",
    "Season",
    "Series",
    "normalize_series",
    "parse_script",
    "Artifact",
    "BookIdentity",
    "BookRecord",
]
