"""
Service modules for the Resonance series generator
"""
from .text_service import TextService, extract_keywords, optimize_for_outline, optimize_for_episode
from .generation_service import GenerationClient, TextGenerator, parse_model_json
from .extraction_service import TextExtractor
from .artifact_store import ArtifactStore, InMemoryArtifactStore, JsonArtifactStore

__all__ = [
    "TextService",
    "extract_keywords",
    "optimize_for_outline",
    "optimize_for_episode",
    "GenerationClient",
    "TextGenerator",
    "parse_model_json",
    "TextExtractor",
    "ArtifactStore",
    "InMemoryArtifactStore",
    "JsonArtifactStore",
]
