"""Audible countdown alerts synthesized with numpy and played through PyAudio."""

import logging
import queue
import threading
from typing import List, Optional, Tuple

import numpy as np
import pyaudio

logger = logging.getLogger(__name__)


def synthesize_tone(frequency: float, duration_ms: int, sample_rate: int = 44100, volume: float = 0.3) -> bytes:
    """Generate a 16-bit mono sine tone.

    Args:
        frequency: Tone frequency in Hz
        duration_ms: Tone length in milliseconds
        sample_rate: Output sample rate
        volume: Amplitude between 0.0 and 1.0

    Returns:
        Raw little-endian 16-bit PCM bytes
    """
    samples = int(sample_rate * duration_ms / 1000)
    t = np.linspace(0, duration_ms / 1000, samples, False)
    wave_data = np.sin(2 * np.pi * frequency * t) * volume
    return (wave_data * 32767).astype(np.int16).tobytes()


def silence(duration_ms: int, sample_rate: int = 44100) -> bytes:
    return b'\x00\x00' * int(sample_rate * duration_ms / 1000)


class TonePlayer:
    """Plays short beeps without blocking the caller.

    One PyAudio instance and one worker thread serve every tone, so tones
    never overlap. Playback errors (no output device, busy device) are logged
    and dropped: a missing beep must never disturb the recording.
    """

    def __init__(self, sample_rate: int = 44100, volume: float = 0.3):
        self.sample_rate = sample_rate
        self.volume = volume
        self.tone_queue: "queue.Queue[Optional[bytes]]" = queue.Queue()
        self.audio: Optional[pyaudio.PyAudio] = None
        self.worker: Optional[threading.Thread] = None
        self.lock = threading.Lock()

    def beep(self, frequency: int = 800, duration_ms: int = 100) -> None:
        self._enqueue([(frequency, duration_ms, 0)])

    def alarm(self, count: int = 6, frequency: int = 1000, duration_ms: int = 80, spacing_ms: int = 120) -> None:
        """Rapid series of tones, one every `spacing_ms`."""
        gap = max(0, spacing_ms - duration_ms)
        self._enqueue([(frequency, duration_ms, gap)] * count)

    def close(self) -> None:
        """Stop the worker and release the audio device."""
        with self.lock:
            worker = self.worker
            self.worker = None
        if worker is not None:
            self.tone_queue.put(None)
            worker.join(timeout=2.0)
        if self.audio is not None:
            self.audio.terminate()
            self.audio = None

    def _enqueue(self, tones: List[Tuple[int, int, int]]) -> None:
        pcm = b''.join(
            synthesize_tone(freq, length, self.sample_rate, self.volume) + silence(gap, self.sample_rate)
            for freq, length, gap in tones
        )
        with self.lock:
            if self.worker is None:
                self.worker = threading.Thread(target=self._worker_loop, name="TonePlayerThread", daemon=True)
                self.worker.start()
        self.tone_queue.put(pcm)

    def _worker_loop(self) -> None:
        while True:
            pcm = self.tone_queue.get()
            if pcm is None:
                break
            self._play(pcm)

    def _play(self, pcm: bytes) -> None:
        stream = None
        try:
            if self.audio is None:
                self.audio = pyaudio.PyAudio()
            stream = self.audio.open(format=pyaudio.paInt16, channels=1, rate=self.sample_rate, output=True)
            stream.write(pcm)
        except OSError as e:
            logger.error(f"Failed to play tone: {e}")
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
