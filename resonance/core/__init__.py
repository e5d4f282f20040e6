"""
Core modules for the Resonance series generator
"""
from .constants import (
    OUTLINE_MAX_WORDS,
    EPISODE_MAX_WORDS,
    EPISODE_MIN_WORDS,
    EPISODE_BATCH_SIZE,
    GENERATION_TEMPERATURE,
    ARTIFACT_SERIES,
    ARTIFACT_EPISODE,
)
from .errors import (
    ResonanceError,
    GenerationError,
    ModelResponseParseError,
    ExtractionError,
    DailyLimitReachedError,
    GenerationInProgressError,
    UnknownToneError,
)

__all__ = [
    "ResonanceError",
    "GenerationError",
    "ModelResponseParseError",
    "ExtractionError",
    "DailyLimitReachedError",
    "GenerationInProgressError",
    "UnknownToneError",
    # Constants
    "OUTLINE_MAX_WORDS",
    "EPISODE_MAX_WORDS",
    "EPISODE_MIN_WORDS",
    "EPISODE_BATCH_SIZE",
    "GENERATION_TEMPERATURE",
    "ARTIFACT_SERIES",
    "ARTIFACT_EPISODE",
]
