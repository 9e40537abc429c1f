"""Integration tests for the record -> generate -> save workflow."""

import asyncio
import io
import time
import wave
from pathlib import Path

import pytest

from minutetaker.errors import SaveFailure
from minutetaker.models.session import RecordingState
from minutetaker.services.meeting_service import MeetingService


def wait_for(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        time.sleep(0.01)
    return condition()


@pytest.fixture
def live_service(config, generator, tokens, player, mock_pyaudio, sample_audio_chunk):
    """MeetingService capturing through AudioCapture with PyAudio mocked out."""
    mock_pyaudio['stream'].read.return_value = sample_audio_chunk
    meeting = MeetingService(config, generator=generator, token_provider=tokens, player=player)
    yield meeting
    meeting.shutdown()
    meeting.session.ticker.cancel()


@pytest.mark.integration
class TestMeetingWorkflow:
    """Complete meeting workflows over the real capture thread."""

    def test_record_generate_and_keep_locally(self, live_service, tokens, mock_pyaudio):
        """Test recording produces a valid WAV that flows into generation."""
        session = live_service.session
        live_service.start_recording(30)
        assert wait_for(lambda: session.chunk_count >= 5)

        session.pause()
        paused_chunks = session.chunk_count
        time.sleep(0.1)
        assert session.chunk_count <= paused_chunks + 1
        session.resume()
        assert wait_for(lambda: session.chunk_count >= paused_chunks + 3)

        artifact = live_service.stop_recording()

        assert session.state == RecordingState.STOPPED
        mock_pyaudio['stream'].close.assert_called_once()
        with wave.open(io.BytesIO(artifact.data), 'rb') as wf:
            assert wf.getframerate() == 16000
            assert wf.getnchannels() == 1
            assert wf.getnframes() == artifact.chunk_count * 1024

        minutes = asyncio.run(live_service.generate(live_service.build_request(artifact, participants=["田中"])))
        assert minutes.startswith("# 定例会議")

        tokens.current_token.return_value = None
        with pytest.raises(SaveFailure):
            asyncio.run(live_service.save(minutes, "田中", artifact))
        saved = live_service.file_manager.get_session_path(live_service.session_id) / "minutes.md"
        assert saved.read_text(encoding="utf-8") == minutes

        kept = live_service.shutdown()
        assert Path(kept).read_bytes() == artifact.data

    def test_device_failure_interrupts_and_recovers(self, live_service, mock_pyaudio, sample_audio_chunk):
        """Test a read failure interrupts the session and a new acquisition resumes it."""
        session = live_service.session
        live_service.start_recording()
        assert wait_for(lambda: session.chunk_count >= 3)

        mock_pyaudio['stream'].read.side_effect = OSError("Device unavailable")
        assert wait_for(lambda: session.state == RecordingState.INTERRUPTED)
        buffered = session.chunk_count

        mock_pyaudio['stream'].read.side_effect = None
        mock_pyaudio['stream'].read.return_value = sample_audio_chunk
        session.resume_interrupted()
        assert wait_for(lambda: session.chunk_count > buffered)

        artifact = live_service.stop_recording()
        assert artifact.chunk_count > buffered
        assert mock_pyaudio['class'].call_count == 2

    def test_interrupted_shutdown_keeps_audio(self, live_service, mock_pyaudio):
        """Test shutting down an interrupted session backs up what was captured."""
        session = live_service.session
        live_service.start_recording()
        assert wait_for(lambda: session.chunk_count >= 2)
        mock_pyaudio['stream'].read.side_effect = OSError("Device unavailable")
        assert wait_for(lambda: session.state == RecordingState.INTERRUPTED)

        path = live_service.shutdown()

        assert path.endswith("recording.wav")
        assert session.state == RecordingState.STOPPED
