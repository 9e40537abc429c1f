"""Recording session state machine.

Owns the microphone capture lifecycle, wall-clock elapsed time across
pause/resume/interruption, the countdown cycle and the chunk buffer.

    IDLE -> RECORDING <-> PAUSED
    RECORDING/PAUSED -> INTERRUPTED -> RECORDING (resume_interrupted)
    RECORDING/PAUSED/INTERRUPTED -> STOPPED (stop) or IDLE (cancel)

Transitions are serialized by a re-entrant lock. The capture thread only
ever appends chunks (and only while RECORDING); everything else happens in
the transition methods. Capture release and ticker cancellation happen after
the lock is dropped so the capture and ticker threads can never deadlock
against a transition, but always before the transition method returns.
"""

import logging
import threading
from typing import Callable, List, Optional, Any

from ..audio.capture import AudioCapture
from ..audio.track import TrackMonitor
from ..errors import InterruptionError, InvalidStateTransition, NoAudioCaptured
from ..models.audio import AudioArtifact
from ..models.events import AudioEvent, SessionEvent, TickEvent
from ..models.session import RecordingState, SessionSnapshot
from .clock import ClockSource, SystemClock
from .publisher import SessionPublisher
from .ticker import Ticker

logger = logging.getLogger(__name__)

CaptureFactory = Callable[[Callable[[AudioEvent], None]], Any]


def default_capture_factory(callback: Callable[[AudioEvent], None]) -> AudioCapture:
    return AudioCapture(callback=callback)


class RecordingSession:
    """Explicit finite-state machine for one meeting recording."""

    def __init__(self,
                 capture_factory: CaptureFactory = default_capture_factory,
                 clock: Optional[ClockSource] = None,
                 publisher: Optional[SessionPublisher] = None,
                 tick_interval: float = 1.0,
                 sample_rate: int = 16000,
                 channels: int = 1):
        """Initialize recording session.

        Args:
            capture_factory: Builds a single-use capture from a chunk callback.
                The capture must provide acquire() -> AudioTrack, pause(),
                resume() and release().
            clock: Time source for all duration math
            publisher: Receives state, tick and time-up events
            tick_interval: Seconds between ticks while recording
            sample_rate: Sample rate of captured chunks
            channels: Channel count of captured chunks
        """
        self.capture_factory = capture_factory
        self.clock = clock or SystemClock()
        self.publisher = publisher or SessionPublisher()
        self.sample_rate = sample_rate
        self.channels = channels

        self.lock = threading.RLock()
        self.state = RecordingState.IDLE
        self.chunks: List[bytes] = []
        self.artifact: Optional[AudioArtifact] = None
        self.capture: Optional[Any] = None

        # Timing
        self.accumulated_seconds = 0.0
        self.segment_start: Optional[float] = None

        # Countdown cycle
        self.countdown_target: Optional[float] = None
        self.cycle_offset = 0.0
        self._time_up_fired = False

        self.monitor = TrackMonitor(self._on_interruption_change)
        self.ticker = Ticker(self.tick, interval=tick_interval)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def elapsed_seconds(self) -> float:
        """Total recorded time: committed segments plus the open one."""
        with self.lock:
            if self.state == RecordingState.RECORDING and self.segment_start is not None:
                return self.accumulated_seconds + max(0.0, self.clock.now() - self.segment_start)
            return self.accumulated_seconds

    @property
    def cycle_elapsed_seconds(self) -> float:
        """Recorded time since the current countdown cycle began."""
        with self.lock:
            return self.elapsed_seconds - self.cycle_offset

    @property
    def remaining_seconds(self) -> Optional[float]:
        with self.lock:
            if self.countdown_target is None:
                return None
            return self.countdown_target - self.cycle_elapsed_seconds

    @property
    def is_interrupted(self) -> bool:
        return self.state == RecordingState.INTERRUPTED

    @property
    def chunk_count(self) -> int:
        with self.lock:
            if self.state == RecordingState.STOPPED and self.artifact is not None:
                return self.artifact.chunk_count
            return len(self.chunks)

    def snapshot(self) -> SessionSnapshot:
        with self.lock:
            return SessionSnapshot(
                state=self.state,
                elapsed_seconds=self.elapsed_seconds,
                remaining_seconds=self.remaining_seconds,
                countdown_target=self.countdown_target,
                chunk_count=self.chunk_count,
                is_interrupted=self.is_interrupted,
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, countdown_target: Optional[float] = None) -> None:
        """Acquire the microphone and begin a new recording.

        Args:
            countdown_target: Optional budget in seconds for this recording

        Raises:
            PermissionDenied: If the microphone cannot be acquired (state stays IDLE)
            InvalidStateTransition: If a recording is already in progress
        """
        with self.lock:
            if self.state not in (RecordingState.IDLE, RecordingState.STOPPED) or self.capture is not None:
                raise InvalidStateTransition("start", self.state)

            capture = self.capture_factory(self._on_audio)
            track = capture.acquire()

            self.capture = capture
            self.chunks = []
            self.artifact = None
            self.accumulated_seconds = 0.0
            self.segment_start = self.clock.now()
            self.countdown_target = float(countdown_target) if countdown_target else None
            self.cycle_offset = 0.0
            self._time_up_fired = False
            self.state = RecordingState.RECORDING
            self.monitor.attach(track)
            event = self._event("started", countdown_target=self.countdown_target)

        self.ticker.start()
        logger.info(f"Recording started (countdown: {self.countdown_target})")
        self.publisher.publish_state(event)

    def pause(self) -> None:
        """Suspend capture and freeze elapsed time. Valid only while RECORDING."""
        with self.lock:
            self._check_not_interrupted()
            if self.state != RecordingState.RECORDING:
                raise InvalidStateTransition("pause", self.state)
            self._commit_segment()
            self.capture.pause()
            self.state = RecordingState.PAUSED
            event = self._event("paused")

        self.ticker.cancel()
        logger.info(f"Recording paused at {event.elapsed_seconds:.1f}s")
        self.publisher.publish_state(event)

    def resume(self) -> None:
        """Continue capturing into the same chunk sequence. Valid only while PAUSED."""
        with self.lock:
            self._check_not_interrupted()
            if self.state != RecordingState.PAUSED:
                raise InvalidStateTransition("resume", self.state)
            self.segment_start = self.clock.now()
            self.capture.resume()
            self.state = RecordingState.RECORDING
            event = self._event("resumed")

        self.ticker.start()
        logger.info("Recording resumed")
        self.publisher.publish_state(event)

    def resume_interrupted(self) -> None:
        """Re-acquire the microphone after an interruption, keeping buffered chunks.

        Raises:
            PermissionDenied: If the new acquisition fails (state stays INTERRUPTED)
            InvalidStateTransition: If the session is not INTERRUPTED
        """
        with self.lock:
            if self.state != RecordingState.INTERRUPTED:
                raise InvalidStateTransition("resume after interruption", self.state)
            old_capture, self.capture = self.capture, None
            self.monitor.detach()

        if old_capture is not None:
            old_capture.release()

        with self.lock:
            if self.state != RecordingState.INTERRUPTED:
                raise InvalidStateTransition("resume after interruption", self.state)
            capture = self.capture_factory(self._on_audio)
            track = capture.acquire()

            self.capture = capture
            self.segment_start = self.clock.now()
            self.state = RecordingState.RECORDING
            self.monitor.attach(track)
            event = self._event("resumed_after_interruption", chunk_count=len(self.chunks))

        self.ticker.start()
        logger.info(f"Recording resumed after interruption with {len(self.chunks)} buffered chunks")
        self.publisher.publish_state(event)

    def stop(self) -> AudioArtifact:
        """Finalize the buffered chunks into one artifact and release the microphone.

        Calling stop() again after it succeeded returns the same artifact.

        Returns:
            The finalized AudioArtifact

        Raises:
            NoAudioCaptured: If interrupted before any audio was buffered
            InvalidStateTransition: If no recording was started
        """
        with self.lock:
            if self.state == RecordingState.STOPPED and self.artifact is not None:
                logger.debug("stop() called on a stopped session; returning existing artifact")
                return self.artifact
            if self.state == RecordingState.IDLE:
                raise InvalidStateTransition("stop", self.state)
            if self.state == RecordingState.INTERRUPTED and not self.chunks:
                raise NoAudioCaptured("Recording was interrupted before any audio was captured")

            self._commit_segment()
            self.artifact = AudioArtifact.from_chunks(
                self.chunks,
                sample_rate=self.sample_rate,
                channels=self.channels,
                duration_seconds=self.accumulated_seconds,
            )
            self.chunks = []
            capture, self.capture = self.capture, None
            self.monitor.detach()
            self.state = RecordingState.STOPPED
            artifact = self.artifact
            event = self._event("stopped", chunk_count=artifact.chunk_count,
                                size_bytes=artifact.size_bytes)

        self.ticker.cancel()
        if capture is not None:
            capture.release()
        logger.info(f"Recording stopped: {artifact.duration_seconds:.1f}s, "
                    f"{artifact.chunk_count} chunks, {artifact.size_bytes} bytes")
        self.publisher.publish_state(event)
        return artifact

    def cancel(self) -> None:
        """Discard everything and release the microphone before returning.

        Destructive: callers must obtain user confirmation first.
        """
        with self.lock:
            if self.state in (RecordingState.IDLE, RecordingState.STOPPED):
                raise InvalidStateTransition("cancel", self.state)
            discarded = len(self.chunks)
            self.chunks = []
            self.accumulated_seconds = 0.0
            self.segment_start = None
            self.countdown_target = None
            self.cycle_offset = 0.0
            self._time_up_fired = False
            capture, self.capture = self.capture, None
            self.monitor.detach()
            self.state = RecordingState.IDLE
            event = self._event("cancelled", discarded_chunks=discarded)

        self.ticker.cancel()
        if capture is not None:
            capture.release()
        logger.info(f"Recording cancelled, {discarded} chunks discarded")
        self.publisher.publish_state(event)

    def extend(self, additional_seconds: float, after_break: bool = False) -> None:
        """Raise the countdown ceiling or start a fresh countdown cycle.

        Args:
            additional_seconds: Seconds to add (or the new budget after a break)
            after_break: Start a new cycle of `additional_seconds` instead of
                extending the current one. Total elapsed time is kept.
        """
        if additional_seconds <= 0:
            raise ValueError("additional_seconds must be positive")

        with self.lock:
            self._check_not_interrupted()
            if self.state not in (RecordingState.RECORDING, RecordingState.PAUSED) \
                    or self.countdown_target is None:
                raise InvalidStateTransition("extend the countdown", self.state)

            if after_break:
                self._commit_segment()
                if self.state == RecordingState.RECORDING:
                    self.segment_start = self.clock.now()
                self.cycle_offset = self.accumulated_seconds
                self.countdown_target = float(additional_seconds)
            else:
                self.countdown_target = max(self.countdown_target, self.cycle_elapsed_seconds) \
                    + float(additional_seconds)
            self._time_up_fired = False
            event = self._event("extended", after_break=after_break,
                                countdown_target=self.countdown_target,
                                remaining_seconds=self.remaining_seconds)

        logger.info(f"Countdown extended by {additional_seconds}s "
                    f"({'after break' if after_break else 'in place'})")
        self.publisher.publish_state(event)

    # ------------------------------------------------------------------
    # Ticks and external signals
    # ------------------------------------------------------------------

    def tick(self) -> TickEvent:
        """Recompute timing from the clock and fire time-up at most once per cycle."""
        with self.lock:
            remaining = self.remaining_seconds
            tick = TickEvent(
                elapsed_seconds=self.elapsed_seconds,
                remaining_seconds=remaining,
                is_paused=self.state == RecordingState.PAUSED,
                is_interrupted=self.is_interrupted,
            )
            time_up = None
            if (remaining is not None and remaining <= 0
                    and self.state == RecordingState.RECORDING
                    and not self._time_up_fired):
                self._time_up_fired = True
                time_up = self._event("time_up", countdown_target=self.countdown_target)

        self.publisher.publish_tick(tick)
        if time_up is not None:
            self.publisher.publish_time_up(time_up)
        return tick

    def on_host_resumed(self) -> TickEvent:
        """Called when the host comes back from background/suspend."""
        if self.state in (RecordingState.RECORDING, RecordingState.PAUSED):
            self.monitor.recheck()
        return self.tick()

    def _on_audio(self, event: AudioEvent) -> None:
        with self.lock:
            if self.state == RecordingState.RECORDING:
                self.chunks.append(event.audio_data)

    def _on_interruption_change(self, interrupted: bool) -> None:
        if not interrupted:
            logger.info("Microphone signal restored")
            return

        with self.lock:
            if self.state not in (RecordingState.RECORDING, RecordingState.PAUSED):
                return
            self._commit_segment()
            self.state = RecordingState.INTERRUPTED
            event = self._event("interrupted", chunk_count=len(self.chunks))

        self.ticker.cancel()
        logger.warning(f"Recording interrupted at {event.elapsed_seconds:.1f}s "
                       f"with {len(self.chunks)} buffered chunks")
        self.publisher.publish_state(event)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_not_interrupted(self) -> None:
        if self.state == RecordingState.INTERRUPTED:
            raise InterruptionError("The microphone is unavailable; reconnect it or stop the recording")

    def _commit_segment(self) -> None:
        """Fold the open segment into accumulated_seconds (no-op when not recording)."""
        if self.state == RecordingState.RECORDING and self.segment_start is not None:
            self.accumulated_seconds += max(0.0, self.clock.now() - self.segment_start)
        self.segment_start = None

    def _event(self, event_type: str, **metadata) -> SessionEvent:
        return SessionEvent(
            event_type=event_type,
            state=self.state.value,
            elapsed_seconds=self.elapsed_seconds,
            metadata=metadata,
        )
