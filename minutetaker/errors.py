"""Exception hierarchy for minutetaker.

Every error raised by the recording core or by a collaborator adapter derives
from MinutetakerError so the UI layer can turn it into a banner.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models.audio import AudioArtifact


class MinutetakerError(Exception):
    """Base exception for all minutetaker errors."""

    def __init__(self, detail: str = "An unexpected error occurred", code: str = "MINUTETAKER_ERROR"):
        self.detail = detail
        self.code = code
        super().__init__(detail)


class PermissionDenied(MinutetakerError):
    """Raised when the microphone cannot be acquired."""

    def __init__(self, detail: str = "Microphone access was denied"):
        super().__init__(detail=detail, code="PERMISSION_DENIED")


class NoAudioCaptured(MinutetakerError):
    """Raised when stop is requested but nothing was buffered."""

    def __init__(self, detail: str = "No audio was captured"):
        super().__init__(detail=detail, code="NO_AUDIO_CAPTURED")


class InterruptionError(MinutetakerError):
    """Raised when an operation needs a live microphone but the session is interrupted."""

    def __init__(self, detail: str = "Recording interrupted: the microphone is unavailable"):
        super().__init__(detail=detail, code="INTERRUPTED")


class InvalidStateTransition(MinutetakerError):
    """Raised when a transition is requested from a state that does not allow it."""

    def __init__(self, action: str, state: object):
        self.action = action
        self.state = state
        super().__init__(
            detail=f"Cannot {action} while {getattr(state, 'value', state)}",
            code="INVALID_TRANSITION",
        )


class UploadFailure(MinutetakerError):
    """Raised when an artifact could not be uploaded for generation."""

    def __init__(self, detail: str = "Upload failed", backup: Optional["AudioArtifact"] = None):
        self.backup = backup
        super().__init__(detail=detail, code="UPLOAD_FAILURE")


class GenerationFailure(MinutetakerError):
    """Raised when readiness polling or the generation stream fails."""

    def __init__(self, detail: str = "Minutes generation failed", backup: Optional["AudioArtifact"] = None):
        self.backup = backup
        super().__init__(detail=detail, code="GENERATION_FAILURE")


class SaveFailure(MinutetakerError):
    """Raised when generated minutes could not be persisted.

    The minutes text is carried along so callers never lose it.
    """

    def __init__(self, detail: str = "Saving minutes failed", minutes: str = ""):
        self.minutes = minutes
        super().__init__(detail=detail, code="SAVE_FAILURE")


class AuthenticationRequired(MinutetakerError):
    """Raised when no usable access token is available."""

    def __init__(self, detail: str = "Sign-in is required"):
        super().__init__(detail=detail, code="AUTH_REQUIRED")
