"""Abstract base class for speaker diarization backends."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models.audio import AudioArtifact
from ..models.diarization import DiarizationResult, SpeakerSegment
from .names import IntroductionNameExtractor, NameExtractor

INTRO_CHECK_LIMIT = 20


class AbstractDiarizer(ABC):
    """Speaker-tagged transcription with best-guess speaker names."""

    def __init__(self, name_extractor: Optional[NameExtractor] = None):
        self.name_extractor = name_extractor or IntroductionNameExtractor()

    @abstractmethod
    def transcribe(self, audio: AudioArtifact) -> DiarizationResult:
        """Transcribe a recording and attribute its segments to speakers.

        Blocking; callers on an event loop run it in an executor.

        Args:
            audio: Finalized recording

        Returns:
            DiarizationResult, empty when no speech was recognized
        """
        pass

    def name_speakers(self, segments: List[SpeakerSegment]) -> DiarizationResult:
        """Map speaker tags to names found in the opening segments.

        Only the first INTRO_CHECK_LIMIT segments are examined; each tag keeps
        the first name found for it. Unnamed tags stay "話者<tag>".
        """
        names: Dict[str, str] = {}
        for segment in segments[:INTRO_CHECK_LIMIT]:
            key = str(segment.speaker_tag)
            if key in names:
                continue
            name = self.name_extractor.extract_name(segment.text)
            if name:
                names[key] = name

        for segment in segments:
            segment.speaker_name = names.get(str(segment.speaker_tag), segment.speaker_name)

        return DiarizationResult(segments=segments, speaker_names=names)
