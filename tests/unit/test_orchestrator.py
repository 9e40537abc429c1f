"""Unit tests for GenerationOrchestrator."""

import asyncio

import pytest

from minutetaker.errors import GenerationFailure, UploadFailure
from minutetaker.generation.orchestrator import GenerationOrchestrator, GenerationPhase
from minutetaker.models.audio import AudioArtifact
from minutetaker.models.diarization import DiarizationResult, SpeakerSegment
from minutetaker.models.generation import (
    FileState, GenerationRequest, MeetingMode, SupplementaryFile,
)


class FakeDiarizer:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = 0

    def transcribe(self, audio):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result


def collect(orchestrator, request):
    async def run():
        return [chunk async for chunk in orchestrator.generate(request)]
    return asyncio.run(run())


@pytest.fixture
def artifact():
    return AudioArtifact.from_chunks([b'\x01\x00' * 1600], sample_rate=16000, duration_seconds=0.1)


@pytest.fixture
def request_with_audio(artifact):
    return GenerationRequest(
        mode=MeetingMode.BUSINESS,
        audio=artifact,
        files=(SupplementaryFile("agenda.pdf", "application/pdf", b"%PDF"),),
        participants=("田中", "佐藤"),
    )


@pytest.mark.unit
class TestGenerationOrchestrator:

    def test_streams_chunks_in_order(self, generator, request_with_audio):
        orchestrator = GenerationOrchestrator(generator, poll_interval=0)

        chunks = collect(orchestrator, request_with_audio)

        assert chunks == generator.chunks
        assert orchestrator.phase == GenerationPhase.DONE
        assert generator.uploaded[0].startswith("recording_")
        assert generator.uploaded[1] == "agenda.pdf"

        payload = generator.payloads[0]
        assert payload.mode == MeetingMode.BUSINESS
        assert payload.audio.display_name == generator.uploaded[0]
        assert [f.display_name for f in payload.files] == ["agenda.pdf"]
        assert "田中" in payload.instructions

    def test_upload_failure_carries_backup(self, generator, request_with_audio, artifact):
        generator.fail_upload = "agenda.pdf"
        orchestrator = GenerationOrchestrator(generator, poll_interval=0)

        with pytest.raises(UploadFailure) as exc_info:
            collect(orchestrator, request_with_audio)

        assert exc_info.value.backup is artifact
        assert orchestrator.phase == GenerationPhase.FAILED
        assert generator.payloads == []

    def test_waits_for_processing_files(self, generator, request_with_audio):
        checks = iter([FileState.PROCESSING, FileState.PROCESSING, FileState.ACTIVE])

        async def get_file_state(file):
            generator.state_checks += 1
            if file.display_name == "agenda.pdf":
                return next(checks)
            return FileState.ACTIVE

        generator.get_file_state = get_file_state
        orchestrator = GenerationOrchestrator(generator, poll_interval=0)

        chunks = collect(orchestrator, request_with_audio)

        assert chunks == generator.chunks
        assert generator.state_checks == 4

    def test_readiness_timeout_proceeds(self, generator, request_with_audio):
        generator.states["agenda.pdf"] = FileState.PROCESSING
        orchestrator = GenerationOrchestrator(generator, ready_timeout=0.05, poll_interval=0.01)

        chunks = collect(orchestrator, request_with_audio)

        assert chunks == generator.chunks
        assert orchestrator.phase == GenerationPhase.DONE

    def test_failed_file_aborts(self, generator, request_with_audio, artifact):
        generator.states["agenda.pdf"] = FileState.FAILED
        orchestrator = GenerationOrchestrator(generator, poll_interval=0)

        with pytest.raises(GenerationFailure) as exc_info:
            collect(orchestrator, request_with_audio)

        assert exc_info.value.backup is artifact
        assert generator.payloads == []

    def test_stream_error_after_partial_output(self, generator, request_with_audio, artifact):
        generator.fail_stream_after = 2
        orchestrator = GenerationOrchestrator(generator, poll_interval=0)
        received = []

        async def run():
            async for chunk in orchestrator.generate(request_with_audio):
                received.append(chunk)

        with pytest.raises(GenerationFailure) as exc_info:
            asyncio.run(run())

        assert received == generator.chunks[:2]
        assert exc_info.value.backup is artifact
        assert orchestrator.phase == GenerationPhase.FAILED

    def test_transcript_only_request(self, generator):
        orchestrator = GenerationOrchestrator(generator, diarizer=FakeDiarizer(), poll_interval=0)
        request = GenerationRequest(transcript="議題: 予算")

        collect(orchestrator, request)

        assert generator.uploaded == []
        payload = generator.payloads[0]
        assert payload.audio is None
        assert payload.transcript == "議題: 予算"

    def test_diarization_feeds_speakers(self, generator, request_with_audio):
        result = DiarizationResult(
            segments=[SpeakerSegment(1, "田中", "田中です", 0.0, 1.0)],
            speaker_names={"1": "田中"},
        )
        diarizer = FakeDiarizer(result=result)
        orchestrator = GenerationOrchestrator(generator, diarizer=diarizer, poll_interval=0)

        collect(orchestrator, request_with_audio)

        assert diarizer.calls == 1
        assert generator.payloads[0].speakers is result

    def test_diarization_failure_is_ignored(self, generator, request_with_audio):
        diarizer = FakeDiarizer(error=RuntimeError("quota exceeded"))
        orchestrator = GenerationOrchestrator(generator, diarizer=diarizer, poll_interval=0)

        chunks = collect(orchestrator, request_with_audio)

        assert chunks == generator.chunks
        assert generator.payloads[0].speakers is None

    def test_empty_diarization_is_dropped(self, generator, request_with_audio):
        orchestrator = GenerationOrchestrator(generator, diarizer=FakeDiarizer(result=DiarizationResult()),
                                              poll_interval=0)

        collect(orchestrator, request_with_audio)

        assert generator.payloads[0].speakers is None

    def test_regenerate_appends_feedback(self, generator, request_with_audio):
        orchestrator = GenerationOrchestrator(generator, poll_interval=0)

        async def run():
            return [chunk async for chunk in orchestrator.regenerate(request_with_audio, "決定事項を詳しく")]

        asyncio.run(run())

        assert "決定事項を詳しく" in generator.payloads[0].instructions
        assert request_with_audio.feedback == ""
