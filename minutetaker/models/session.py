"""Session-related data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RecordingState(Enum):
    """States of the recording session state machine."""
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    INTERRUPTED = "interrupted"
    STOPPED = "stopped"


@dataclass
class SessionSnapshot:
    """Point-in-time view of a RecordingSession for display."""
    state: RecordingState
    elapsed_seconds: float
    remaining_seconds: Optional[float]
    countdown_target: Optional[float]
    chunk_count: int
    is_interrupted: bool


@dataclass
class SessionInfo:
    """Metadata written next to a saved recording."""
    session_id: str
    start_time: datetime
    duration_seconds: float
    file_size_bytes: int
    sample_rate: int
    total_chunks: int
    mode: str = "internal"
    audio_file: Optional[str] = None  # local backup path, once one is written
