"""Sending minutes by e-mail through the Gmail API."""

import base64
import logging
from email.message import EmailMessage
from typing import Optional

import aiohttp

from ..generation.minutes import extract_topic
from .google_api import auth_headers, read_json

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://gmail.googleapis.com"


def mail_subject(minutes: str) -> str:
    return f"【議事録】{extract_topic(minutes)}"


def build_raw_message(to: str, subject: str, body: str,
                      attachment: Optional[bytes] = None,
                      attachment_name: str = "minutes.pdf",
                      attachment_mime: str = "application/pdf") -> str:
    """RFC 2822 message encoded as unpadded base64url, as Gmail expects."""
    message = EmailMessage()
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    if attachment is not None:
        maintype, _, subtype = attachment_mime.partition("/")
        message.add_attachment(attachment, maintype=maintype, subtype=subtype, filename=attachment_name)
    return base64.urlsafe_b64encode(message.as_bytes()).decode("ascii").rstrip("=")


class GmailSender:
    """Sends one message per call as the signed-in user."""

    def __init__(self, access_token: str, base_url: str = DEFAULT_BASE_URL):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")

    async def send(self, to: str, subject: str, body: str,
                   attachment: Optional[bytes] = None, attachment_name: str = "minutes.pdf") -> str:
        """Send a message and return its Gmail id.

        Raises:
            GoogleAPIError: If Gmail rejects the message
        """
        raw = build_raw_message(to, subject, body, attachment, attachment_name)
        url = f"{self.base_url}/gmail/v1/users/me/messages/send"
        async with aiohttp.ClientSession(headers=auth_headers(self.access_token)) as session:
            async with session.post(url, json={"raw": raw}) as response:
                result = await read_json(response, "Gmail")

        logger.info(f"Mail sent to {to}: {subject}")
        return result.get("id", "")
