"""Single-attempt minutes generation pipeline.

upload -> wait for ready -> stream, with an optional best-effort diarization
pass in front. Any failure aborts the attempt and carries the recorded audio
back to the caller as a backup; retrying is the caller's decision.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import AsyncIterator, List, Optional

from ..errors import GenerationFailure, UploadFailure
from ..models.diarization import DiarizationResult
from ..models.generation import (
    FileState, GenerationPayload, GenerationRequest, UploadedFile,
)
from .base import AbstractGenerator
from .prompts import build_instructions

logger = logging.getLogger(__name__)


class GenerationPhase(Enum):
    IDLE = "idle"
    DIARIZING = "diarizing"
    UPLOADING = "uploading"
    WAITING = "waiting"
    STREAMING = "streaming"
    DONE = "done"
    FAILED = "failed"


class GenerationOrchestrator:
    """Turns a GenerationRequest into a stream of minutes text."""

    def __init__(self,
                 generator: AbstractGenerator,
                 diarizer=None,
                 ready_timeout: float = 120.0,
                 poll_interval: float = 2.0,
                 terminology: str = ""):
        """Initialize generation orchestrator.

        Args:
            generator: Backend that uploads files and streams text
            diarizer: Optional AbstractDiarizer used for speaker hints
            ready_timeout: Upper bound in seconds for readiness polling
            poll_interval: Seconds between readiness checks
            terminology: Name and term spelling rules added to the instructions
        """
        self.generator = generator
        self.diarizer = diarizer
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval
        self.terminology = terminology
        self.phase = GenerationPhase.IDLE

    async def generate(self, request: GenerationRequest) -> AsyncIterator[str]:
        """Run one generation attempt and yield text chunks as they arrive.

        Raises:
            UploadFailure: If any upload fails
            GenerationFailure: If a file fails processing or the stream errors
        """
        logger.info(f"Generation started: mode={request.mode.value}, "
                    f"audio={'yes' if request.audio else 'no'}, files={len(request.files)}")
        try:
            speakers = await self._diarize(request)

            self.phase = GenerationPhase.UPLOADING
            audio_file, files = await self._upload_all(request)

            self.phase = GenerationPhase.WAITING
            await self._wait_until_ready(([audio_file] if audio_file else []) + files, request)

            payload = GenerationPayload(
                mode=request.mode,
                instructions=build_instructions(
                    request.mode,
                    request.date,
                    participants=request.participants,
                    speakers=speakers,
                    feedback=request.feedback,
                    terminology=self.terminology,
                ),
                audio=audio_file,
                files=files,
                transcript=request.transcript,
                speakers=speakers,
            )

            self.phase = GenerationPhase.STREAMING
            chunk_count = 0
            async for chunk in self._relay(payload, request):
                chunk_count += 1
                yield chunk
        except (UploadFailure, GenerationFailure):
            self.phase = GenerationPhase.FAILED
            raise

        self.phase = GenerationPhase.DONE
        logger.info(f"Generation finished after {chunk_count} chunks")

    def regenerate(self, request: GenerationRequest, feedback: str) -> AsyncIterator[str]:
        """Start a fresh attempt with the user's feedback appended to the instructions."""
        logger.info("Regeneration requested with feedback")
        return self.generate(request.with_feedback(feedback))

    async def _diarize(self, request: GenerationRequest) -> Optional[DiarizationResult]:
        if self.diarizer is None or request.audio is None:
            return None

        self.phase = GenerationPhase.DIARIZING
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self.diarizer.transcribe, request.audio)
        except Exception as e:
            logger.warning(f"Diarization failed, continuing without speaker hints: {e}", exc_info=True)
            return None

        if result.is_empty:
            logger.info("Diarization returned no segments")
            return None
        logger.info(f"Diarization found {len(result.speaker_names)} named speakers")
        return result

    async def _upload_all(self, request: GenerationRequest):
        uploads = []
        if request.audio is not None:
            stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            uploads.append(self.generator.upload(f"recording_{stamp}.wav", request.audio.data,
                                                 request.audio.mime_type))
        for supplementary in request.files:
            uploads.append(self.generator.upload(supplementary.name, supplementary.data,
                                                 supplementary.mime_type))

        tasks = [asyncio.ensure_future(upload) for upload in uploads]
        try:
            results: List[UploadedFile] = list(await asyncio.gather(*tasks))
        except Exception as e:
            for task in tasks:
                task.cancel()
            logger.error(f"Upload failed: {e}")
            raise UploadFailure(f"Upload failed: {e}", backup=request.audio) from e

        audio_file = results.pop(0) if request.audio is not None else None
        return audio_file, results

    async def _wait_until_ready(self, files: List[UploadedFile], request: GenerationRequest) -> None:
        pending = [f for f in files if f.state != FileState.ACTIVE]
        if not pending:
            return

        try:
            await asyncio.wait_for(
                asyncio.gather(*(self._poll_file(f, request) for f in pending)),
                timeout=self.ready_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Files not ready after {self.ready_timeout}s, generating anyway: "
                           f"{[f.display_name for f in pending]}")

    async def _poll_file(self, file: UploadedFile, request: GenerationRequest) -> None:
        while True:
            try:
                state = await self.generator.get_file_state(file)
            except Exception as e:
                raise GenerationFailure(f"Could not check file {file.display_name}: {e}",
                                        backup=request.audio) from e

            if state == FileState.ACTIVE:
                logger.debug(f"File ready: {file.name}")
                return
            if state == FileState.FAILED:
                logger.error(f"File processing failed: {file.name}")
                raise GenerationFailure(f"File processing failed: {file.display_name}",
                                        backup=request.audio)
            await asyncio.sleep(self.poll_interval)

    async def _relay(self, payload: GenerationPayload, request: GenerationRequest) -> AsyncIterator[str]:
        try:
            async for chunk in self.generator.stream(payload):
                yield chunk
        except Exception as e:
            logger.error(f"Generation stream failed: {e}")
            raise GenerationFailure(f"Minutes generation failed: {e}", backup=request.audio) from e
