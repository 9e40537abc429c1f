"""Recording session core: clock, state machine, countdown."""

from .clock import ClockSource, SystemClock
from .publisher import SessionPublisher
from .recording import RecordingSession
from .countdown import (
    CountdownAlarm,
    CountdownLevel,
    CountdownThresholds,
    BreakInterlude,
    countdown_level,
    format_clock,
)

__all__ = [
    "ClockSource",
    "SystemClock",
    "SessionPublisher",
    "RecordingSession",
    "CountdownAlarm",
    "CountdownLevel",
    "CountdownThresholds",
    "BreakInterlude",
    "countdown_level",
    "format_clock",
]
