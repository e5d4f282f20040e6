"""
Exception types raised across the series pipeline
"""
from typing import Optional


class ResonanceError(Exception):
    """Base class for every error this package raises on purpose."""


class GenerationError(ResonanceError):
    """The text-generation endpoint failed; the message is the upstream one."""

    def __init__(self, message: str, model: Optional[str] = None):
        super().__init__(message)
        self.model = model


class ModelResponseParseError(ResonanceError):
    """Model output could not be turned into JSON, even after repair."""

    def __init__(self, message: str, raw_excerpt: str = ""):
        super().__init__(f"{message} Raw response: {raw_excerpt!r}" if raw_excerpt else message)
        self.raw_excerpt = raw_excerpt


class ExtractionError(ResonanceError):
    """EPUB/PDF text could not be extracted."""


class DailyLimitReachedError(ResonanceError):
    def __init__(self, limit: int):
        super().__init__(f"Daily limit of {limit} new series reached. Try again tomorrow.")
        self.limit = limit


class GenerationInProgressError(ResonanceError):
    def __init__(self, job_id: str):
        super().__init__(f"A generation run is already active for this book and tone (job {job_id}).")
        self.job_id = job_id


class UnknownToneError(ResonanceError):
    def __init__(self, tone_id: str):
        super().__init__(f"Unknown tone: {tone_id}")
        self.tone_id = tone_id
