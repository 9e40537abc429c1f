"""Event models published on the session pub/sub topics."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, Dict


@dataclass
class AudioEvent:
    """Raw audio chunk delivered by the capture thread."""
    audio_data: bytes
    timestamp: float  # ClockSource time when the chunk was read
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    peak_level: float = 0.0


@dataclass
class SessionEvent:
    """Session lifecycle event ("started", "paused", "interrupted", "time_up", ...)."""
    event_type: str
    state: str
    elapsed_seconds: float
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TickEvent:
    """Periodic timing update derived from wall-clock deltas."""
    elapsed_seconds: float
    remaining_seconds: Optional[float]  # None when no countdown is active
    is_paused: bool
    is_interrupted: bool


@dataclass
class AlertEvent:
    """Audible alert emitted by the countdown alarm."""
    kind: str  # "beep" or "alarm"
    remaining_seconds: int
    frequency: int = 0
