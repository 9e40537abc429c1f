"""Data models for the minutetaker application."""

from .audio import AudioStats, AudioArtifact
from .events import AudioEvent, SessionEvent, TickEvent, AlertEvent
from .session import RecordingState, SessionSnapshot, SessionInfo
from .diarization import SpeakerSegment, DiarizationResult
from .generation import (
    MeetingMode,
    FileState,
    SupplementaryFile,
    UploadedFile,
    GenerationRequest,
    GenerationPayload,
)

__all__ = [
    "AudioStats",
    "AudioArtifact",
    "AudioEvent",
    "SessionEvent",
    "TickEvent",
    "AlertEvent",
    "RecordingState",
    "SessionSnapshot",
    "SessionInfo",
    "SpeakerSegment",
    "DiarizationResult",
    # Generation models
    "MeetingMode",
    "FileState",
    "SupplementaryFile",
    "UploadedFile",
    "GenerationRequest",
    "GenerationPayload",
]
