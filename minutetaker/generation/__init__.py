"""Minutes generation: uploads, readiness polling and streamed output."""

from .base import AbstractGenerator
from .gemini_backend import GeminiAPIError, GeminiGenerator
from .minutes import MINUTES_END, MINUTES_START, MinutesExtractor, extract_topic
from .orchestrator import GenerationOrchestrator, GenerationPhase
from .prompts import build_instructions

__all__ = [
    "AbstractGenerator",
    "GeminiAPIError",
    "GeminiGenerator",
    "GenerationOrchestrator",
    "GenerationPhase",
    "MINUTES_END",
    "MINUTES_START",
    "MinutesExtractor",
    "build_instructions",
    "extract_topic",
]
