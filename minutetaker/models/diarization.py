"""Speaker diarization data models."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class SpeakerSegment:
    """Contiguous speech attributed to one speaker."""
    speaker_tag: int
    speaker_name: str
    text: str
    start_time: float
    end_time: float


@dataclass
class DiarizationResult:
    """Speaker-tagged transcript with best-guess names."""
    segments: List[SpeakerSegment] = field(default_factory=list)
    speaker_names: Dict[str, str] = field(default_factory=dict)  # "1" -> "田中"

    @property
    def full_text(self) -> str:
        return "".join(segment.text for segment in self.segments)

    @property
    def formatted_transcript(self) -> str:
        """Transcript in "name: text" lines."""
        return "\n".join(f"{segment.speaker_name}: {segment.text}" for segment in self.segments)

    @property
    def is_empty(self) -> bool:
        return not self.segments
