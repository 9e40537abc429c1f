"""Data models for minutes generation requests and uploaded artifacts."""

from dataclasses import dataclass, field, replace
from datetime import date as date_type
from enum import Enum
from typing import List, Optional, Tuple

from .audio import AudioArtifact
from .diarization import DiarizationResult


class MeetingMode(Enum):
    """Kind of meeting; selects the instruction set for generation."""
    INTERNAL = "internal"
    BUSINESS = "business"
    OTHER = "other"

    @property
    def label(self) -> str:
        """Label used in saved file names."""
        return {
            MeetingMode.INTERNAL: "社内",
            MeetingMode.BUSINESS: "商談",
            MeetingMode.OTHER: "その他",
        }[self]


class FileState(Enum):
    """Processing state of a file uploaded to the generation service."""
    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SupplementaryFile:
    """A document (PDF, image, audio) attached to a generation request."""
    name: str
    mime_type: str
    data: bytes

    @property
    def is_audio(self) -> bool:
        return self.mime_type.startswith("audio/")


@dataclass(frozen=True)
class UploadedFile:
    """Reference to a file held by the generation service."""
    name: str          # service-side identifier, e.g. "files/abc123"
    uri: str
    mime_type: str
    display_name: str
    state: FileState = FileState.PROCESSING


@dataclass(frozen=True)
class GenerationRequest:
    """Ephemeral value object consumed once by GenerationOrchestrator."""
    mode: MeetingMode = MeetingMode.INTERNAL
    audio: Optional[AudioArtifact] = None
    transcript: str = ""
    files: Tuple[SupplementaryFile, ...] = ()
    participants: Tuple[str, ...] = ()
    date: date_type = field(default_factory=date_type.today)
    feedback: str = ""

    def __post_init__(self):
        if self.audio is None and not self.transcript.strip() and not self.files:
            raise ValueError("A recording, transcript text or at least one file is required")

    def with_feedback(self, feedback: str) -> "GenerationRequest":
        """Copy of this request for a user-initiated regeneration."""
        return replace(self, feedback=feedback)


@dataclass
class GenerationPayload:
    """Everything the generator needs after uploads have completed."""
    mode: MeetingMode
    instructions: str
    audio: Optional[UploadedFile] = None
    files: List[UploadedFile] = field(default_factory=list)
    transcript: str = ""
    speakers: Optional[DiarizationResult] = None
