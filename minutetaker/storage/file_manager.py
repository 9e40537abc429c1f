"""Local storage for recordings, backups and generated minutes."""

import json
import logging
import random
import string
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models.audio import AudioArtifact
from ..models.session import SessionInfo

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/webm": ".webm",
    "audio/mp4": ".m4a",
    "audio/mpeg": ".mp3",
}


class FileManager:
    """Keeps one directory per session under the data directory.

    This is where captured audio lands when a downstream step fails, so the
    recording can be retried or handed over manually.
    """

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.sessions_dir = self.data_dir / "sessions"
        self.logs_dir = self.data_dir / "logs"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        for directory in [self.data_dir, self.sessions_dir, self.logs_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def create_session_directory(self) -> str:
        """Create new session directory with timestamp and random suffix.

        Returns:
            Session ID (timestamp-based with random suffix)
        """
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=4))
        session_id = f"{timestamp}_{random_suffix}"
        session_path = self.sessions_dir / session_id
        session_path.mkdir(exist_ok=True)

        logger.info(f"Created session directory: {session_path}")
        return session_id

    def get_session_path(self, session_id: str) -> Path:
        return self.sessions_dir / session_id

    def save_backup_audio(self, artifact: AudioArtifact, session_id: str, filename: str = "recording") -> str:
        """Write a recording to the session directory.

        Args:
            artifact: Finalized recording
            session_id: Session identifier
            filename: File name without extension

        Returns:
            Full path to the saved audio file
        """
        session_path = self.get_session_path(session_id)
        session_path.mkdir(parents=True, exist_ok=True)

        audio_path = session_path / (filename + _EXTENSIONS.get(artifact.mime_type, ".bin"))
        audio_path.write_bytes(artifact.data)

        logger.info(f"Backup audio saved: {audio_path} ({artifact.size_bytes} bytes)")
        return str(audio_path)

    def save_minutes(self, minutes: str, session_id: str, filename: str = "minutes.md") -> str:
        """Write minutes text to the session directory and return its path."""
        session_path = self.get_session_path(session_id)
        session_path.mkdir(parents=True, exist_ok=True)

        minutes_path = session_path / filename
        minutes_path.write_text(minutes, encoding="utf-8")

        logger.info(f"Minutes saved locally: {minutes_path}")
        return str(minutes_path)

    def save_session_info(self, session_info: SessionInfo) -> str:
        """Save session information to JSON file.

        Returns:
            Path to saved session info file
        """
        session_path = self.get_session_path(session_info.session_id)
        session_path.mkdir(parents=True, exist_ok=True)

        info_file = session_path / "session_info.json"

        info_dict = asdict(session_info)
        info_dict['start_time'] = session_info.start_time.isoformat()

        with open(info_file, 'w', encoding='utf-8') as f:
            json.dump(info_dict, f, indent=2, ensure_ascii=False)

        logger.info(f"Session info saved: {info_file}")
        return str(info_file)

    def load_session_info(self, session_id: str) -> Optional[SessionInfo]:
        """Load session information from JSON file.

        Returns:
            SessionInfo object or None if not found or unreadable
        """
        info_file = self.get_session_path(session_id) / "session_info.json"

        if not info_file.exists():
            logger.warning(f"Session info file not found: {info_file}")
            return None

        try:
            with open(info_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            data['start_time'] = datetime.fromisoformat(data['start_time'])
            return SessionInfo(**data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading session info: {e}")
            return None
