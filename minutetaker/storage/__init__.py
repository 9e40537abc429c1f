"""Local and cloud storage for recordings and minutes."""

from .auth import TokenProvider
from .drive import DriveFile, DriveStore
from .file_manager import FileManager
from .google_api import GoogleAPIError
from .mail import GmailSender, mail_subject
from .saver import MinutesSaver, SaveResult

__all__ = [
    "DriveFile",
    "DriveStore",
    "FileManager",
    "GmailSender",
    "GoogleAPIError",
    "MinutesSaver",
    "SaveResult",
    "TokenProvider",
    "mail_subject",
]
