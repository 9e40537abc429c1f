"""Unit tests for the terminal screens' key handling and prompts."""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from minutetaker.models.generation import MeetingMode
from minutetaker.models.session import RecordingState
from minutetaker.ui.minutes_screen import MinutesScreen
from minutetaker.ui.recording_screen import RecordingScreen


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=100, force_terminal=False)


@pytest.fixture
def screen(service, console):
    recording_screen = RecordingScreen(service, console)
    yield recording_screen
    recording_screen.close()


@pytest.mark.unit
class TestRecordingScreen:

    def test_pause_and_resume_keys(self, service, screen):
        service.start_recording()

        assert screen.handle_key('p') is None
        assert service.session.state == RecordingState.PAUSED
        assert screen.handle_key('p') is None  # ignored while paused
        screen.handle_key('r')
        assert service.session.state == RecordingState.RECORDING

    def test_stop_and_cancel_leave_the_loop(self, service, screen):
        service.start_recording()

        assert screen.handle_key('s') == "stop"
        assert screen.handle_key('c') == "cancel"
        assert service.session.state == RecordingState.RECORDING

    def test_interruption_message_and_reconnect(self, service, screen, capture_factory):
        service.start_recording()
        capture_factory.current.emit()
        capture_factory.current.track.mute()

        assert "Microphone lost" in screen.message

        screen.handle_key('x')

        assert service.session.state == RecordingState.RECORDING
        assert screen.message == ""
        assert len(capture_factory.captures) == 2

    def test_failed_reconnect_shows_message(self, service, screen, capture_factory):
        service.start_recording()
        capture_factory.current.track.end()
        capture_factory.deny = True

        screen.handle_key('x')

        assert service.session.state == RecordingState.INTERRUPTED
        assert screen.message == "Microphone access was denied"

    def test_time_up_sets_pending(self, service, screen, fake_clock):
        service.start_recording(1)
        fake_clock.advance(60)

        service.session.tick()

        assert screen.time_up_pending is True

    def test_render_shows_countdown(self, service, screen, console, fake_clock):
        service.start_recording(1, MeetingMode.BUSINESS)
        fake_clock.advance(35.5)

        console.print(screen.render(service.session.snapshot()))
        output = console.file.getvalue()

        assert "00:25" in output
        assert "RECORDING" in output
        assert "商談" in output

    def test_stop_without_audio_keeps_screen(self, service, screen, capture_factory):
        service.start_recording()
        capture_factory.current.track.end()

        assert screen._stop() is None
        assert "reconnect" in screen.message

    def test_cancel_needs_confirmation(self, service, screen):
        service.start_recording()

        with patch("minutetaker.ui.recording_screen.click.confirm", return_value=False):
            assert screen._confirm_cancel() is False
        assert service.session.state == RecordingState.RECORDING

        with patch("minutetaker.ui.recording_screen.click.confirm", return_value=True):
            assert screen._confirm_cancel() is True
        assert service.session.state == RecordingState.IDLE

    def test_time_up_menu_end(self, service, screen, capture_factory):
        service.start_recording(1)
        capture_factory.current.emit()

        with patch("minutetaker.ui.recording_screen.click.prompt", return_value="e"):
            artifact = screen._time_up_menu()

        assert artifact.chunk_count == 1
        assert service.session.state == RecordingState.STOPPED

    def test_time_up_menu_extend(self, service, screen, fake_clock):
        service.start_recording(1)
        fake_clock.advance(60)

        with patch("minutetaker.ui.recording_screen.click.prompt", side_effect=["x", "30"]), \
                patch("minutetaker.ui.recording_screen.click.confirm", return_value=True):
            assert screen._time_up_menu() is None

        assert service.session.remaining_seconds == pytest.approx(1800)


@pytest.mark.unit
class TestMinutesScreen:

    def test_generate_then_quit(self, service, console):
        request = service.build_request(transcript="議題")

        with patch("minutetaker.ui.minutes_screen.click.prompt", return_value="q"):
            minutes = MinutesScreen(service, console).run(request)

        assert minutes == "# 定例会議\n本文"

    def test_regenerate_with_feedback(self, service, console, generator):
        request = service.build_request(transcript="議題")

        with patch("minutetaker.ui.minutes_screen.click.prompt", side_effect=["r", "短くして", "q"]):
            MinutesScreen(service, console).run(request)

        assert len(generator.payloads) == 2
        assert "短くして" in generator.payloads[1].instructions

    def test_generation_failure_is_reported(self, service, console, generator):
        generator.fail_stream_after = 0
        request = service.build_request(transcript="議題")

        assert MinutesScreen(service, console).generate(request) is None
        assert "Minutes generation failed" in console.file.getvalue()

    def test_give_up_after_failure(self, service, console, generator):
        generator.fail_stream_after = 0
        request = service.build_request(transcript="議題")

        with patch("minutetaker.ui.minutes_screen.click.confirm", return_value=False):
            assert MinutesScreen(service, console).run(request) is None

    def test_save_failure_is_reported(self, service, console, tokens):
        tokens.current_token.return_value = None
        request = service.build_request(transcript="議題")

        with patch("minutetaker.ui.minutes_screen.click.prompt", side_effect=["s", "山田", "q"]):
            MinutesScreen(service, console).run(request)

        assert "kept locally" in console.file.getvalue()

