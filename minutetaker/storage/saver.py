"""Saving finished minutes and their recordings to Drive."""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional, Sequence, Tuple

import aiohttp

from ..errors import SaveFailure
from ..generation.minutes import extract_topic
from ..models.audio import AudioArtifact
from ..models.generation import MeetingMode, SupplementaryFile
from .drive import DOCUMENT_MIME_TYPE, DriveFile, DriveStore
from .google_api import GoogleAPIError

logger = logging.getLogger(__name__)

JST = timezone(timedelta(hours=9))

_AUDIO_EXTENSIONS = {
    "webm": ".webm",
    "mp4": ".m4a",
    "m4a": ".m4a",
    "mpeg": ".mp3",
    "wav": ".wav",
}


def audio_extension(mime_type: str) -> str:
    for marker, extension in _AUDIO_EXTENSIONS.items():
        if marker in mime_type:
            return extension
    return ""


@dataclass
class SaveResult:
    folder_name: str
    base_name: str
    doc_link: str
    audio_link: Optional[str] = None


class MinutesSaver:
    """Writes minutes as a Google Doc into a per-day folder and the audio next to it.

    Never loses the minutes: any failure surfaces as SaveFailure carrying the
    text so the caller can retry or keep it locally.
    A retry after a partial failure does not create the finished files again.
    """

    def __init__(self,
                 token_provider,
                 minutes_folder_id: str = "root",
                 audio_folder_id: str = "root",
                 store_factory: Callable[[str], DriveStore] = DriveStore):
        """Initialize minutes saver.

        Args:
            token_provider: Object with current_token() -> Optional[str]
            minutes_folder_id: Root under which date folders are created
            audio_folder_id: Folder receiving recordings
            store_factory: Builds a DriveStore for an access token
        """
        self.token_provider = token_provider
        self.minutes_folder_id = minutes_folder_id
        self.audio_folder_id = audio_folder_id
        self.store_factory = store_factory
        # upload name -> (file, sha256 of its content) for every file this saver created
        self.uploaded: Dict[str, Tuple[DriveFile, str]] = {}

    async def save(self,
                   minutes: str,
                   mode: MeetingMode,
                   user_name: str = "不明",
                   artifact: Optional[AudioArtifact] = None,
                   extra_audio: Sequence[SupplementaryFile] = (),
                   now: Optional[datetime] = None) -> SaveResult:
        if not minutes.strip():
            raise SaveFailure("Minutes are empty", minutes=minutes)

        token = self.token_provider.current_token()
        if not token:
            raise SaveFailure("Sign-in is required to save to Drive", minutes=minutes)

        now = (now or datetime.now(JST)).astimezone(JST)
        folder_name = now.strftime("%Y-%m-%d")
        base_name = f"{now.strftime('%Y%m%d')}_{mode.label}_{extract_topic(minutes)}({user_name or '不明'})"

        store = self.store_factory(token)
        try:
            folder = await store.find_or_create_folder(folder_name, self.minutes_folder_id)
            doc = await self._put(store, f"{base_name}_議事録", minutes.encode("utf-8"), "text/plain",
                                  folder.id, convert_to=DOCUMENT_MIME_TYPE)
            result = SaveResult(folder_name=folder_name, base_name=base_name, doc_link=doc.web_view_link)

            if artifact is not None:
                audio = await self._put(store, f"{base_name}_音声{audio_extension(artifact.mime_type)}",
                                        artifact.data, artifact.mime_type, self.audio_folder_id)
                result.audio_link = audio.web_view_link

            for index, extra in enumerate(extra_audio, start=1):
                suffix = f"_{index}" if len(extra_audio) > 1 else ""
                await self._put(store, f"{base_name}_音声{suffix}{audio_extension(extra.mime_type)}",
                                extra.data, extra.mime_type, self.audio_folder_id)
        except (aiohttp.ClientError, asyncio.TimeoutError, GoogleAPIError) as e:
            logger.error(f"Saving minutes to Drive failed: {e}")
            raise SaveFailure(f"Saving to Drive failed: {e}", minutes=minutes) from e

        logger.info(f"Minutes saved to Drive: {folder_name}/{base_name}")
        return result

    async def _put(self,
                   store: DriveStore,
                   name: str,
                   data: bytes,
                   mime_type: str,
                   folder_id: str,
                   convert_to: Optional[str] = None) -> DriveFile:
        """Upload a file once; a later save of the same name skips or updates it."""
        digest = hashlib.sha256(data).hexdigest()
        previous = self.uploaded.get(name)
        if previous is None:
            drive_file = await store.upload(name, data, mime_type, folder_id, convert_to=convert_to)
        elif previous[1] == digest:
            logger.info(f"'{name}' is already on Drive; skipping upload")
            return previous[0]
        else:
            drive_file = await store.update(previous[0].id, data, mime_type)
        self.uploaded[name] = (drive_file, digest)
        return drive_file
