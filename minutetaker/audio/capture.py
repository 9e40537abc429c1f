"""Microphone capture on a background thread with track-state reporting."""

import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Optional, Callable
import numpy as np

from ..errors import PermissionDenied
from ..models.audio import AudioStats
from ..models.events import AudioEvent
from .track import AudioTrack


logger = logging.getLogger(__name__)


class AudioCapture:
    """One microphone acquisition: opens the stream, reads chunks, reports track state.

    A capture instance is single use. acquire() opens the device synchronously
    so a refused microphone surfaces to the caller; release() closes it and
    ends the track. A new acquisition needs a new AudioCapture.
    """

    def __init__(
        self,
        callback: Callable[[AudioEvent], None],
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        format: int = pyaudio.paInt16,
        silence_threshold: float = 0.0005,
        mute_after_seconds: float = 3.0,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            callback: Receives every chunk read while not paused
            sample_rate: Audio sample rate in Hz
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels (1 for mono)
            format: Audio format (16-bit signed int)
            silence_threshold: Normalized peak level treated as digital silence
            mute_after_seconds: Continuous silence after which the track is muted
        """
        self.audio_event_callback = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.format = format
        self.silence_threshold = silence_threshold
        self.mute_after_seconds = mute_after_seconds

        self.track = AudioTrack()

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.pause_event = Event()
        self.is_capturing = False

        # Statistics tracking
        self.total_chunks = 0
        self.silent_frames = 0
        self.peak_level = 0.0

        # PyAudio instance
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def acquire(self) -> AudioTrack:
        """Open the microphone and start reading in the background.

        Returns:
            The AudioTrack describing this acquisition

        Raises:
            PermissionDenied: If the device cannot be opened
        """
        if self.is_capturing or self.track.is_ended:
            raise RuntimeError("AudioCapture instances cannot be reused")

        try:
            self.pyaudio_instance = pyaudio.PyAudio()
            self.stream = self.pyaudio_instance.open(
                format=self.format,
                channels=self.channels,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_size,
                stream_callback=None
            )
        except OSError as e:
            logger.error(f"Could not open microphone: {e}")
            self._terminate()
            raise PermissionDenied(f"Microphone access was denied: {e}") from e

        logger.info(f"Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk")

        self.stop_event.clear()
        self.pause_event.clear()
        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.is_capturing = True
        self.recording_thread.start()
        return self.track

    def pause(self) -> None:
        """Stop delivering chunks; the device stays open."""
        self.pause_event.set()

    def resume(self) -> None:
        self.pause_event.clear()

    @property
    def is_paused(self) -> bool:
        return self.pause_event.is_set()

    def release(self) -> None:
        """Stop reading, close the device and end the track. Blocks until done."""
        if not self.is_capturing:
            self.track.end()
            return

        logger.info("Releasing microphone")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning("Recording thread did not stop cleanly")

        self._close_stream()
        self.is_capturing = False
        self.track.end()
        logger.info(f"Microphone released. Total chunks: {self.total_chunks}")

    def _close_stream(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as e:
                logger.warning(f"Error closing audio stream: {e}")
        self._terminate()

    def _terminate(self) -> None:
        if self.pyaudio_instance:
            self.pyaudio_instance.terminate()
            self.pyaudio_instance = None

    def _measure_peak(self, audio_chunk: bytes) -> float:
        samples = np.frombuffer(audio_chunk, dtype=np.int16)
        if samples.size == 0:
            return 0.0
        return float(np.abs(samples.astype(np.int32)).max()) / 32768.0

    def _update_track(self, peak: float) -> None:
        """Mute the track after sustained digital silence, unmute on signal."""
        if peak <= self.silence_threshold:
            self.silent_frames += self.chunk_size
            if self.silent_frames / self.sample_rate >= self.mute_after_seconds:
                self.track.mute()
        else:
            self.silent_frames = 0
            self.track.unmute()

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream = self.stream
        while not self.stop_event.is_set():
            try:
                audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
            except OSError as e:
                if not self.stop_event.is_set():
                    logger.error(f"Microphone read failed, ending track: {e}")
                    self.track.end()
                break

            self.total_chunks += 1
            peak = self._measure_peak(audio_chunk)
            self.peak_level = peak
            self._update_track(peak)

            if self.pause_event.is_set() or self.stop_event.is_set():
                continue

            self.audio_event_callback(AudioEvent(
                audio_data=audio_chunk,
                timestamp=time.monotonic(),
                sequence_number=self.total_chunks,
                sample_rate=self.sample_rate,
                channels=self.channels,
                peak_level=peak,
            ))

    def get_recording_stats(self) -> AudioStats:
        """Get current capture statistics."""
        return AudioStats(
            is_capturing=self.is_capturing,
            is_paused=self.is_paused,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            peak_level=self.peak_level,
        )
