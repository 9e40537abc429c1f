"""Microphone capture, track monitoring and alert tones."""

from .capture import AudioCapture
from .track import AudioTrack, TrackMonitor
from .tones import TonePlayer

__all__ = [
    'AudioCapture',
    'AudioTrack',
    'TrackMonitor',
    'TonePlayer',
]
