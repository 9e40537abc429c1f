"""Speaker diarization backends."""

from .base import AbstractDiarizer
from .google_backend import GoogleSpeechDiarizer
from .names import IntroductionNameExtractor, NameExtractor

__all__ = [
    "AbstractDiarizer",
    "GoogleSpeechDiarizer",
    "IntroductionNameExtractor",
    "NameExtractor",
]
