"""Live microphone track state and interruption monitoring."""

import logging
import threading
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

LIVE = "live"
ENDED = "ended"


class AudioTrack:
    """State of one acquired microphone stream.

    The capture thread reports what it observes (read failures, sustained
    digital silence) through mute(), unmute() and end(); listeners are
    notified only on actual changes. An ended track never comes back: a new
    acquisition produces a new AudioTrack.
    """

    def __init__(self, label: str = "microphone"):
        self.label = label
        self.ready_state = LIVE
        self.muted = False
        self.lock = threading.Lock()
        self._on_mute: List[Callable[[], None]] = []
        self._on_unmute: List[Callable[[], None]] = []
        self._on_ended: List[Callable[[], None]] = []

    @property
    def is_ended(self) -> bool:
        return self.ready_state == ENDED

    def add_listeners(self,
                      on_mute: Callable[[], None],
                      on_unmute: Callable[[], None],
                      on_ended: Callable[[], None]) -> None:
        with self.lock:
            self._on_mute.append(on_mute)
            self._on_unmute.append(on_unmute)
            self._on_ended.append(on_ended)

    def remove_listeners(self) -> None:
        with self.lock:
            self._on_mute.clear()
            self._on_unmute.clear()
            self._on_ended.clear()

    def mute(self) -> None:
        with self.lock:
            if self.muted or self.is_ended:
                return
            self.muted = True
            listeners = list(self._on_mute)
        logger.info(f"Audio track '{self.label}' muted - possible interruption")
        self._notify(listeners)

    def unmute(self) -> None:
        with self.lock:
            if not self.muted or self.is_ended:
                return
            self.muted = False
            listeners = list(self._on_unmute)
        logger.info(f"Audio track '{self.label}' unmuted")
        self._notify(listeners)

    def end(self) -> None:
        with self.lock:
            if self.is_ended:
                return
            self.ready_state = ENDED
            listeners = list(self._on_ended)
        logger.info(f"Audio track '{self.label}' ended")
        self._notify(listeners)

    @staticmethod
    def _notify(listeners: List[Callable[[], None]]) -> None:
        for listener in listeners:
            listener()


class TrackMonitor:
    """Translates track mute/unmute/ended signals into an interrupted flag."""

    def __init__(self, on_change: Callable[[bool], None]):
        """Initialize track monitor.

        Args:
            on_change: Called with the new interrupted value whenever it changes
        """
        self.on_change = on_change
        self.track: Optional[AudioTrack] = None
        self._interrupted = False

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    def attach(self, track: AudioTrack) -> None:
        """Watch a freshly acquired track. Clears any previous interruption."""
        self.detach()
        self.track = track
        track.add_listeners(self._on_mute, self._on_unmute, self._on_ended)
        self._set(False)
        logger.debug(f"TrackMonitor attached to '{track.label}'")

    def detach(self) -> None:
        if self.track is not None:
            self.track.remove_listeners()
            self.track = None

    def recheck(self) -> bool:
        """Re-inspect the track after the host resumes (events may have been missed).

        Returns:
            The interrupted flag after the check
        """
        track = self.track
        if track is not None and (track.is_ended or track.muted):
            logger.info(f"Recheck found track '{track.label}' {track.ready_state}"
                        f"{' (muted)' if track.muted else ''}")
            self._set(True)
        return self._interrupted

    def _on_mute(self) -> None:
        self._set(True)

    def _on_unmute(self) -> None:
        # An ended track stays interrupted until a new acquisition.
        if self.track is not None and self.track.is_ended:
            return
        self._set(False)

    def _on_ended(self) -> None:
        self._set(True)

    def _set(self, value: bool) -> None:
        if value == self._interrupted:
            return
        self._interrupted = value
        self.on_change(value)
