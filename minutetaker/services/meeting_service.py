"""Meeting service: wires configuration into recording, generation and saving."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Sequence

import aiohttp

from ..audio.capture import AudioCapture
from ..audio.tones import TonePlayer
from ..config import MinutetakerConfig
from ..diarization import GoogleSpeechDiarizer
from ..errors import (
    AuthenticationRequired, GenerationFailure, MinutetakerError, NoAudioCaptured, SaveFailure,
    UploadFailure,
)
from ..generation import GeminiGenerator, GenerationOrchestrator, MinutesExtractor
from ..generation.base import AbstractGenerator
from ..models.audio import AudioArtifact
from ..models.generation import GenerationRequest, MeetingMode, SupplementaryFile
from ..models.session import RecordingState, SessionInfo
from ..session import (
    BreakInterlude, ClockSource, CountdownAlarm, CountdownThresholds, RecordingSession,
    SessionPublisher, SystemClock,
)
from ..storage import (
    FileManager, GmailSender, GoogleAPIError, MinutesSaver, SaveResult, TokenProvider, mail_subject,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class MeetingService:
    """Owns one recording session and everything downstream of it."""

    def __init__(self,
                 config: MinutetakerConfig,
                 generator: Optional[AbstractGenerator] = None,
                 diarizer=None,
                 token_provider=None,
                 capture_factory=None,
                 clock: Optional[ClockSource] = None,
                 player=None,
                 publisher: Optional[SessionPublisher] = None):
        """Initialize meeting service.

        Every collaborator can be injected; anything left out is built from
        the configuration.

        Args:
            config: Application configuration
            generator: Minutes generation backend
            diarizer: Speaker diarization backend
            token_provider: Source of Google access tokens
            capture_factory: Builds a microphone capture from a chunk callback
            clock: Time source for the session and breaks
            player: Tone player for countdown alerts
            publisher: Session event publisher
        """
        self.config = config
        self.audio_settings = config.audio()
        self.countdown_settings = config.countdown()
        generation_settings = config.generation()
        drive_settings = config.drive()
        speech_settings = config.speech()

        self.clock = clock or SystemClock()
        self.publisher = publisher or SessionPublisher()
        self.session = RecordingSession(
            capture_factory=capture_factory or self._create_capture,
            clock=self.clock,
            publisher=self.publisher,
            tick_interval=self.audio_settings.tick_interval,
            sample_rate=self.audio_settings.sample_rate,
            channels=self.audio_settings.channels,
        )
        self.thresholds = CountdownThresholds(
            warning_seconds=self.countdown_settings.warning_seconds,
            urgent_seconds=self.countdown_settings.urgent_seconds,
            high_pitch_seconds=self.countdown_settings.high_pitch_seconds,
        )
        self.player = player or TonePlayer()
        self.alarm = CountdownAlarm(self.player, self.publisher, self.thresholds)

        if generator is None:
            if not generation_settings.api_key:
                logger.warning("No Gemini API key configured; generation will fail")
            generator = GeminiGenerator(generation_settings.api_key, generation_settings.model,
                                        generation_settings.base_url)
        if diarizer is None and speech_settings.enabled and speech_settings.credentials_path:
            diarizer = GoogleSpeechDiarizer(
                credentials_path=speech_settings.credentials_path,
                language=speech_settings.language_code,
                max_speakers=speech_settings.max_speakers,
            )
        self.orchestrator = GenerationOrchestrator(
            generator,
            diarizer=diarizer,
            ready_timeout=generation_settings.ready_timeout,
            poll_interval=generation_settings.poll_interval,
            terminology=generation_settings.terminology,
        )

        self.file_manager = FileManager(config.get_data_directory())
        self.token_provider = token_provider or TokenProvider(config.get_token_path())
        self.saver = MinutesSaver(self.token_provider, drive_settings.minutes_folder_id,
                                  drive_settings.audio_folder_id)

        self.session_id: Optional[str] = None
        self.started_at: Optional[datetime] = None
        self.backup_path: Optional[str] = None
        self.audio_on_drive = False
        self.mode = MeetingMode.INTERNAL
        logger.info("MeetingService ready")

    def _create_capture(self, callback) -> AudioCapture:
        return AudioCapture(
            callback=callback,
            sample_rate=self.audio_settings.sample_rate,
            chunk_size=self.audio_settings.chunk_size,
            channels=self.audio_settings.channels,
            silence_threshold=self.audio_settings.silence_threshold,
            mute_after_seconds=self.audio_settings.mute_after_seconds,
        )

    # Recording

    def start_recording(self, duration_minutes: Optional[int] = None,
                        mode: MeetingMode = MeetingMode.INTERNAL) -> str:
        """Start a new recording and return its session id.

        Raises:
            PermissionDenied: If the microphone cannot be opened
        """
        target = duration_minutes * 60 if duration_minutes else None
        self.session.start(countdown_target=target)
        self.session_id = self.file_manager.create_session_directory()
        self.started_at = datetime.now()
        self.backup_path = None
        self.audio_on_drive = False
        self.mode = mode
        logger.info(f"Meeting {self.session_id} started in {mode.value} mode")
        return self.session_id

    def stop_recording(self) -> AudioArtifact:
        artifact = self.session.stop()
        if self.session_id:
            self.file_manager.save_session_info(SessionInfo(
                session_id=self.session_id,
                start_time=self.started_at or datetime.now(),
                duration_seconds=artifact.duration_seconds,
                file_size_bytes=artifact.size_bytes,
                sample_rate=artifact.sample_rate,
                total_chunks=artifact.chunk_count,
                mode=self.mode.value,
            ))
        return artifact

    def extend(self, minutes: int, after_break: bool = False) -> None:
        self.session.extend(minutes * 60, after_break=after_break)

    def start_break(self) -> BreakInterlude:
        logger.info(f"Break started ({self.countdown_settings.break_seconds}s)")
        return BreakInterlude(self.clock, self.countdown_settings.break_seconds)

    # Generation

    def build_request(self,
                      artifact: Optional[AudioArtifact] = None,
                      transcript: str = "",
                      files: Sequence[SupplementaryFile] = (),
                      participants: Sequence[str] = (),
                      mode: Optional[MeetingMode] = None) -> GenerationRequest:
        return GenerationRequest(
            mode=mode or self.mode,
            audio=artifact,
            transcript=transcript,
            files=tuple(files),
            participants=tuple(participants),
        )

    async def generate(self, request: GenerationRequest,
                       on_progress: Optional[ProgressCallback] = None) -> str:
        """Generate minutes, reporting the growing draft through `on_progress`.

        On failure the recording is written to the session directory before
        the error is re-raised.
        """
        return await self._collect(self.orchestrator.generate(request), on_progress)

    async def regenerate(self, request: GenerationRequest, feedback: str,
                         on_progress: Optional[ProgressCallback] = None) -> str:
        return await self._collect(self.orchestrator.regenerate(request, feedback), on_progress)

    async def _collect(self, chunks, on_progress: Optional[ProgressCallback]) -> str:
        extractor = MinutesExtractor()
        try:
            async for chunk in chunks:
                minutes = extractor.feed(chunk)
                if extractor.started and on_progress is not None:
                    on_progress(minutes)
        except (UploadFailure, GenerationFailure) as e:
            if e.backup is not None:
                path = self.save_backup(e.backup)
                logger.error(f"{e.code}: {e.detail}; recording kept at {path}")
            raise

        if not extractor.started:
            logger.warning("Model output had no minutes section; using the full response")
            return extractor.full_text.strip()
        return extractor.minutes

    def save_backup(self, artifact: AudioArtifact) -> str:
        """Write the recording to the session directory once and return its path."""
        if self.backup_path is not None:
            return self.backup_path

        session_id = self.session_id or self.file_manager.create_session_directory()
        self.session_id = session_id
        self.backup_path = self.file_manager.save_backup_audio(artifact, session_id)

        info = self.file_manager.load_session_info(session_id)
        if info is not None:
            self.file_manager.save_session_info(replace(info, audio_file=self.backup_path))
        return self.backup_path

    # Saving and sharing

    async def save(self, minutes: str, user_name: str = "不明",
                   artifact: Optional[AudioArtifact] = None,
                   extra_audio: Sequence[SupplementaryFile] = ()) -> SaveResult:
        """Save minutes to Drive. On failure they are kept locally and SaveFailure is re-raised."""
        try:
            result = await self.saver.save(minutes, self.mode, user_name, artifact, extra_audio)
        except SaveFailure as e:
            session_id = self.session_id or self.file_manager.create_session_directory()
            self.session_id = session_id
            self.file_manager.save_minutes(e.minutes, session_id)
            raise
        if artifact is not None and artifact is self.session.artifact:
            self.audio_on_drive = True
        return result

    async def send_mail(self, to: str, minutes: str) -> str:
        token = self.token_provider.current_token()
        if not token:
            raise AuthenticationRequired("Sign-in is required to send mail")
        try:
            return await GmailSender(token).send(to, mail_subject(minutes), minutes)
        except (aiohttp.ClientError, GoogleAPIError) as e:
            logger.error(f"Sending mail failed: {e}")
            raise MinutetakerError(f"Sending mail failed: {e}", code="MAIL_FAILURE") from e

    def shutdown(self) -> Optional[str]:
        """Finish an active recording and keep any recording not yet on Drive locally.

        Returns:
            Path of the saved recording, if there was one
        """
        self.alarm.detach()
        self.player.close()

        if self.session.state == RecordingState.STOPPED:
            artifact = self.session.artifact
            if artifact is None or self.audio_on_drive:
                return None
            return self.save_backup(artifact)

        if self.session.state not in (RecordingState.RECORDING, RecordingState.PAUSED,
                                      RecordingState.INTERRUPTED):
            return None

        try:
            artifact = self.stop_recording()
        except NoAudioCaptured:
            self.session.cancel()
            return None
        return self.save_backup(artifact)
