"""Pytest configuration and fixtures for minutetaker tests."""

import asyncio
import itertools
import logging
import tempfile
import time
from pathlib import Path
from typing import List
from unittest.mock import Mock, patch

import numpy as np
import pytest
from pubsub import pub

from minutetaker.audio.track import AudioTrack
from minutetaker.config import MinutetakerConfig
from minutetaker.errors import PermissionDenied
from minutetaker.generation.base import AbstractGenerator
from minutetaker.models.events import AudioEvent
from minutetaker.models.generation import FileState, UploadedFile
from minutetaker.services.meeting_service import MeetingService
from minutetaker.session.clock import ClockSource
from minutetaker.session.publisher import SessionPublisher
from minutetaker.session.recording import RecordingSession


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_topic_ids = itertools.count()


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


class FakeClock(ClockSource):
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeCapture:
    """Stands in for AudioCapture: hands out a track and lets tests push chunks."""

    def __init__(self, callback, deny: bool = False):
        self.callback = callback
        self.deny = deny
        self.track = AudioTrack()
        self.acquired = False
        self.released = False
        self.paused = False
        self.sequence = 0

    def acquire(self) -> AudioTrack:
        if self.deny:
            raise PermissionDenied("Microphone access was denied")
        self.acquired = True
        return self.track

    def pause(self) -> None:
        self.paused = True

    def resume(self) -> None:
        self.paused = False

    def release(self) -> None:
        self.released = True
        self.track.end()

    def emit(self, data: bytes = b'\x10\x00' * 1024) -> None:
        self.sequence += 1
        self.callback(AudioEvent(audio_data=data, timestamp=time.monotonic(), sequence_number=self.sequence))


class FakeCaptureFactory:
    """Capture factory that remembers every capture it built."""

    def __init__(self):
        self.captures: List[FakeCapture] = []
        self.deny = False

    def __call__(self, callback) -> FakeCapture:
        capture = FakeCapture(callback, deny=self.deny)
        self.captures.append(capture)
        return capture

    @property
    def current(self) -> FakeCapture:
        return self.captures[-1]


class FakeGenerator(AbstractGenerator):
    """Records calls; file states and streamed chunks are scripted per test."""

    def __init__(self, chunks=("[MINUTES_START]", "# 定例会議\n", "本文", "[MINUTES_END]")):
        self.chunks = list(chunks)
        self.uploaded: List[str] = []
        self.states = {}
        self.fail_upload = None
        self.fail_stream_after = None
        self.state_checks = 0
        self.payloads = []

    async def upload(self, display_name, data, mime_type):
        await asyncio.sleep(0)
        if display_name == self.fail_upload:
            raise RuntimeError("connection reset")
        self.uploaded.append(display_name)
        return UploadedFile(name=f"files/{len(self.uploaded)}", uri=f"uri/{display_name}",
                            mime_type=mime_type, display_name=display_name)

    async def get_file_state(self, file):
        self.state_checks += 1
        return self.states.get(file.display_name, FileState.ACTIVE)

    async def stream(self, payload):
        self.payloads.append(payload)
        for index, chunk in enumerate(self.chunks):
            if self.fail_stream_after is not None and index == self.fail_stream_after:
                raise RuntimeError("stream closed")
            yield chunk


class EventRecorder:
    """Collects every event published on a SessionPublisher's topics."""

    def __init__(self, publisher: SessionPublisher):
        self.states = []
        self.ticks = []
        self.time_ups = []
        self.alerts = []
        pub.subscribe(self.on_state, publisher.state_topic)
        pub.subscribe(self.on_tick, publisher.tick_topic)
        pub.subscribe(self.on_time_up, publisher.time_up_topic)
        pub.subscribe(self.on_alert, publisher.alert_topic)

    def on_state(self, event):
        self.states.append(event)

    def on_tick(self, event):
        self.ticks.append(event)

    def on_time_up(self, event):
        self.time_ups.append(event)

    def on_alert(self, event):
        self.alerts.append(event)

    @property
    def state_types(self) -> List[str]:
        return [event.event_type for event in self.states]


@pytest.fixture(autouse=True)
def reset_pubsub():
    yield
    pub.unsubAll()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def capture_factory():
    return FakeCaptureFactory()


@pytest.fixture
def publisher():
    return SessionPublisher(prefix=f"test{next(_topic_ids)}")


@pytest.fixture
def recorder(publisher):
    return EventRecorder(publisher)


@pytest.fixture
def session(capture_factory, fake_clock, publisher):
    """RecordingSession on a fake clock; the ticker interval is long enough never to fire."""
    recording = RecordingSession(
        capture_factory=capture_factory,
        clock=fake_clock,
        publisher=publisher,
        tick_interval=3600,
    )
    yield recording
    recording.ticker.cancel()


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    sample_rate = 16000
    duration = 1024 / sample_rate
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def config_file(temp_data_dir):
    """Minimal valid configuration file."""
    path = Path(temp_data_dir) / "minutetaker.yaml"
    path.write_text(
        "audio:\n"
        "  sample_rate: 16000\n"
        "countdown:\n"
        "  warning_seconds: 60\n"
        "  urgent_seconds: 30\n"
        "generation:\n"
        "  api_key: test-key\n"
        "  ready_timeout: 1\n"
        "  poll_interval: 0.01\n"
        "auth:\n"
        "  token_path: token.json\n"
        "storage:\n"
        "  data_directory: data\n"
        "logging:\n"
        "  file_path: data/logs/test.log\n",
        encoding="utf-8",
    )
    return str(path)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def config(config_file):
    config = MinutetakerConfig(config_file)
    config.set("audio.tick_interval", 3600)
    return config


@pytest.fixture
def player():
    """Tone player stand-in."""
    return Mock()


@pytest.fixture
def tokens():
    provider = Mock()
    provider.current_token.return_value = "access-token"
    return provider


@pytest.fixture
def service(config, generator, tokens, capture_factory, fake_clock, player, publisher):
    """MeetingService with every outside collaborator faked."""
    meeting = MeetingService(
        config,
        generator=generator,
        token_provider=tokens,
        capture_factory=capture_factory,
        clock=fake_clock,
        player=player,
        publisher=publisher,
    )
    yield meeting
    meeting.session.ticker.cancel()
    meeting.alarm.detach()
