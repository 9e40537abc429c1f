"""OAuth access tokens for Drive and Gmail."""

import logging
from typing import Optional, Sequence

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

logger = logging.getLogger(__name__)

DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/gmail.send",
)


class TokenProvider:
    """Loads authorized-user credentials and keeps the access token fresh.

    current_token() returns None instead of raising: callers treat a missing
    token as "sign-in required" and report it their own way.
    """

    def __init__(self, token_path: Optional[str], scopes: Sequence[str] = DEFAULT_SCOPES):
        self.token_path = token_path
        self.scopes = list(scopes)
        self.credentials: Optional[Credentials] = None

    def _load(self) -> Credentials:
        logger.info(f"Loading authorized-user credentials from: {self.token_path}")
        return Credentials.from_authorized_user_file(self.token_path, self.scopes)

    def current_token(self) -> Optional[str]:
        if not self.token_path:
            logger.warning("No auth.token_path configured")
            return None

        try:
            if self.credentials is None:
                self.credentials = self._load()
            if not self.credentials.valid:
                logger.info("Refreshing access token")
                self.credentials.refresh(Request())
        except (OSError, ValueError, GoogleAuthError) as e:
            logger.error(f"Could not obtain access token: {e}")
            self.credentials = None
            return None

        return self.credentials.token
