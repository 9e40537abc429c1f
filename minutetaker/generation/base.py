"""Abstract base class for minutes generation backends."""

from abc import ABC, abstractmethod
from typing import AsyncIterator
import logging

from ..models.generation import FileState, GenerationPayload, UploadedFile

logger = logging.getLogger(__name__)


class AbstractGenerator(ABC):
    """Interface to a generative service that accepts files and streams text."""

    @abstractmethod
    async def upload(self, display_name: str, data: bytes, mime_type: str) -> UploadedFile:
        """Upload one artifact to the service.

        Args:
            display_name: Human-readable name for the file
            data: File contents
            mime_type: MIME type of the contents

        Returns:
            Reference to the uploaded file
        """
        pass

    @abstractmethod
    async def get_file_state(self, file: UploadedFile) -> FileState:
        """Return the service-side processing state of an uploaded file."""
        pass

    @abstractmethod
    def stream(self, payload: GenerationPayload) -> AsyncIterator[str]:
        """Start generation and yield text chunks as they are produced."""
        pass
