"""Google Speech-to-Text diarization backend."""

import logging
from typing import List, Optional

from google.api_core import exceptions as gax_exceptions
from google.cloud import speech
from google.oauth2 import service_account

from ..models.audio import AudioArtifact
from ..models.diarization import DiarizationResult, SpeakerSegment
from .base import AbstractDiarizer
from .names import NameExtractor

logger = logging.getLogger(__name__)


class GoogleSpeechDiarizer(AbstractDiarizer):
    """Long-running recognition with speaker diarization."""

    def __init__(self,
                 credentials_path: str,
                 language: str = "ja-JP",
                 max_speakers: int = 6,
                 timeout: float = 600.0,
                 name_extractor: Optional[NameExtractor] = None):
        """Initialize Google diarizer.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Recognition language code
            max_speakers: Upper bound for the diarization speaker count
            timeout: Seconds to wait for the long-running operation
            name_extractor: Strategy for naming speakers from introductions
        """
        super().__init__(name_extractor)
        if not credentials_path:
            raise ValueError("Google credentials path is required for diarization")
        self.credentials_path = credentials_path
        self.language = language
        self.max_speakers = max_speakers
        self.timeout = timeout
        self.client = None

    def initialize(self) -> None:
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)
        self.client = speech.SpeechClient(credentials=credentials)
        logger.info(f"Speech client ready for project: {credentials.project_id}")

    def transcribe(self, audio: AudioArtifact) -> DiarizationResult:
        if self.client is None:
            self.initialize()

        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=audio.sample_rate,
            language_code=self.language,
            enable_automatic_punctuation=True,
            diarization_config=speech.SpeakerDiarizationConfig(
                enable_speaker_diarization=True,
                min_speaker_count=2,
                max_speaker_count=self.max_speakers,
            ),
            model="latest_long",
        )

        logger.info(f"Starting diarization of {audio.duration_seconds:.1f}s recording")
        try:
            operation = self.client.long_running_recognize(
                config=config, audio=speech.RecognitionAudio(content=audio.data))
            response = operation.result(timeout=self.timeout)
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT diarization failed: {e}")
            raise RuntimeError(f"Google Speech diarization error: {e}") from e

        if not response.results:
            logger.info("Diarization found no speech")
            return DiarizationResult()

        # the last result carries word-level speaker tags for the whole recording
        alternatives = response.results[-1].alternatives
        words = alternatives[0].words if alternatives else []
        result = self.name_speakers(group_words(words))
        logger.info(f"Diarization complete: {len(result.segments)} segments, "
                    f"{len(result.speaker_names)} speakers named")
        return result


def group_words(words) -> List[SpeakerSegment]:
    """Merge consecutive words with the same speaker tag into segments."""
    segments: List[SpeakerSegment] = []
    for word in words:
        tag = word.speaker_tag or 0
        start = word.start_time.total_seconds()
        end = word.end_time.total_seconds()

        if segments and segments[-1].speaker_tag == tag:
            segments[-1].text += word.word
            segments[-1].end_time = end
        else:
            segments.append(SpeakerSegment(
                speaker_tag=tag,
                speaker_name=f"話者{tag}",
                text=word.word,
                start_time=start,
                end_time=end,
            ))
    return segments
