"""Terminal user interface."""

from .keyboard_input import create_input_handler
from .minutes_screen import MinutesScreen
from .recording_screen import RecordingScreen

__all__ = ["MinutesScreen", "RecordingScreen", "create_input_handler"]
