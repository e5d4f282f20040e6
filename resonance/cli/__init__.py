"""
CLI package for the Resonance series generator
"""
from .main import app

__all__ = ["app"]
