"""Countdown display levels, audible alerts and break interludes.

Everything here is derived from RecordingSession ticks; nothing in this
module feeds back into the session's state.
"""

import math
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pubsub import pub

from ..models.events import AlertEvent, SessionEvent, TickEvent
from .clock import ClockSource
from .publisher import SessionPublisher

logger = logging.getLogger(__name__)

BEEP_FREQUENCY = 800
HIGH_BEEP_FREQUENCY = 1000


class CountdownLevel(Enum):
    NONE = "none"        # no countdown configured
    NORMAL = "normal"
    WARNING = "warning"
    URGENT = "urgent"
    TIME_UP = "time_up"


@dataclass(frozen=True)
class CountdownThresholds:
    """Seconds-remaining thresholds for the countdown display and beeps."""
    warning_seconds: int = 60
    urgent_seconds: int = 30
    high_pitch_seconds: int = 10


def remaining_display_seconds(remaining: float) -> int:
    """Whole seconds shown on the countdown (00:01 until the very end)."""
    return math.ceil(remaining)


def countdown_level(remaining: Optional[float],
                    paused: bool = False,
                    thresholds: CountdownThresholds = CountdownThresholds()) -> CountdownLevel:
    if remaining is None:
        return CountdownLevel.NONE
    seconds = remaining_display_seconds(remaining)
    if seconds <= 0:
        return CountdownLevel.URGENT if paused else CountdownLevel.TIME_UP
    if seconds <= thresholds.urgent_seconds:
        return CountdownLevel.URGENT
    if seconds <= thresholds.warning_seconds:
        return CountdownLevel.WARNING
    return CountdownLevel.NORMAL


def format_clock(seconds: float) -> str:
    """Format as MM:SS; negative values are clamped to 00:00."""
    total = max(0, int(seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


class CountdownAlarm:
    """Beeps once per second while urgent and sounds a one-shot alarm at zero.

    Subscribes to the session's tick and state topics. The alarm latch is
    cleared only when a new recording starts.
    """

    def __init__(self, player, publisher: SessionPublisher,
                 thresholds: CountdownThresholds = CountdownThresholds()):
        """Initialize countdown alarm.

        Args:
            player: Object with beep(frequency, duration_ms) and alarm()
            publisher: Session publisher whose topics to follow
            thresholds: Warning/urgent thresholds
        """
        self.player = player
        self.publisher = publisher
        self.thresholds = thresholds
        self.last_beep_second: Optional[int] = None
        self.alarm_played = False

        pub.subscribe(self._on_tick, publisher.tick_topic)
        pub.subscribe(self._on_state, publisher.state_topic)
        logger.info(f"CountdownAlarm subscribed to {publisher.tick_topic}")

    def detach(self) -> None:
        pub.unsubscribe(self._on_tick, self.publisher.tick_topic)
        pub.unsubscribe(self._on_state, self.publisher.state_topic)

    def reset(self) -> None:
        self.last_beep_second = None
        self.alarm_played = False

    def on_tick(self, remaining: Optional[float], paused: bool) -> Optional[AlertEvent]:
        """Decide whether this tick produces a sound.

        Returns:
            The AlertEvent that was emitted, or None
        """
        if remaining is None or paused:
            return None

        seconds = remaining_display_seconds(remaining)
        alert = None
        if seconds <= 0:
            if not self.alarm_played:
                self.alarm_played = True
                self.player.alarm()
                alert = AlertEvent(kind="alarm", remaining_seconds=seconds, frequency=HIGH_BEEP_FREQUENCY)
        elif seconds <= self.thresholds.urgent_seconds and seconds != self.last_beep_second:
            self.last_beep_second = seconds
            frequency = HIGH_BEEP_FREQUENCY if seconds <= self.thresholds.high_pitch_seconds else BEEP_FREQUENCY
            self.player.beep(frequency, 100)
            alert = AlertEvent(kind="beep", remaining_seconds=seconds, frequency=frequency)

        if alert is not None:
            self.publisher.publish_alert(alert)
        return alert

    def _on_tick(self, event: TickEvent) -> None:
        self.on_tick(event.remaining_seconds, event.is_paused or event.is_interrupted)

    def _on_state(self, event: SessionEvent) -> None:
        if event.event_type == "started":
            self.reset()


class BreakInterlude:
    """Countdown for a break taken before extending the meeting."""

    def __init__(self, clock: ClockSource, duration_seconds: float = 600):
        self.clock = clock
        self.duration_seconds = duration_seconds
        self.started_at = clock.now()
        self.skipped = False

    @property
    def remaining_seconds(self) -> float:
        if self.skipped:
            return 0.0
        return max(0.0, self.duration_seconds - (self.clock.now() - self.started_at))

    @property
    def finished(self) -> bool:
        return self.remaining_seconds <= 0

    def skip(self) -> None:
        logger.info("Break skipped")
        self.skipped = True
