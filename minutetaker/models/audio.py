"""Audio-related data models."""

import io
import wave
from dataclasses import dataclass
from typing import Sequence


@dataclass
class AudioStats:
    """Capture statistics for the live microphone stream."""
    is_capturing: bool
    is_paused: bool
    sample_rate: int
    chunk_size: int
    total_chunks: int
    peak_level: float = 0.0


@dataclass(frozen=True)
class AudioArtifact:
    """Finalized recording produced by RecordingSession.stop().

    Immutable: the WAV bytes are built once and never touched again, so the
    same artifact can be uploaded for generation and offered as a backup.
    """
    data: bytes
    mime_type: str
    sample_rate: int
    channels: int
    duration_seconds: float
    chunk_count: int

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    @classmethod
    def from_chunks(cls,
                    chunks: Sequence[bytes],
                    sample_rate: int,
                    channels: int = 1,
                    sample_width: int = 2,
                    duration_seconds: float = 0.0) -> "AudioArtifact":
        """Concatenate raw PCM chunks into a single WAV artifact.

        Args:
            chunks: Ordered raw 16-bit PCM buffers
            sample_rate: Sample rate of the buffers in Hz
            channels: Number of interleaved channels
            sample_width: Bytes per sample
            duration_seconds: Wall-clock recording time to report

        Returns:
            AudioArtifact holding a complete WAV file
        """
        buffer = io.BytesIO()
        with wave.open(buffer, 'wb') as wf:
            wf.setnchannels(channels)
            wf.setsampwidth(sample_width)
            wf.setframerate(sample_rate)
            for chunk in chunks:
                wf.writeframes(chunk)

        return cls(
            data=buffer.getvalue(),
            mime_type="audio/wav",
            sample_rate=sample_rate,
            channels=channels,
            duration_seconds=duration_seconds,
            chunk_count=len(chunks),
        )
