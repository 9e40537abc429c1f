"""Google Drive storage over the v3 REST API."""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import aiohttp

from .google_api import auth_headers, read_json

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.googleapis.com"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DOCUMENT_MIME_TYPE = "application/vnd.google-apps.document"


@dataclass(frozen=True)
class DriveFile:
    id: str
    web_view_link: str = ""
    name: str = ""


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveStore:
    """Drive operations bound to one access token.

    Folder lookups are memoised per instance, so one instance per save keeps
    a save from creating the same (name, parent) folder twice.
    """

    def __init__(self, access_token: str, base_url: str = DEFAULT_BASE_URL):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self._folders: Dict[Tuple[str, str], DriveFile] = {}

    async def find_folder(self, name: str, parent_id: str = "root") -> Optional[DriveFile]:
        query = (f"name = '{_quote(name)}' and mimeType = '{FOLDER_MIME_TYPE}' "
                 f"and '{_quote(parent_id)}' in parents and trashed = false")
        params = {
            "q": query,
            "fields": "files(id, name, webViewLink)",
            "spaces": "drive",
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        async with aiohttp.ClientSession(headers=auth_headers(self.access_token)) as session:
            async with session.get(f"{self.base_url}/drive/v3/files", params=params) as response:
                result = await read_json(response, "Drive")

        files = result.get("files") or []
        if not files:
            return None
        found = files[0]
        return DriveFile(id=found["id"], web_view_link=found.get("webViewLink", ""), name=found.get("name", name))

    async def create_folder(self, name: str, parent_id: str = "root") -> DriveFile:
        metadata = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        params = {"supportsAllDrives": "true", "fields": "id, name, webViewLink"}
        async with aiohttp.ClientSession(headers=auth_headers(self.access_token)) as session:
            async with session.post(f"{self.base_url}/drive/v3/files", params=params, json=metadata) as response:
                result = await read_json(response, "Drive")

        logger.info(f"Created Drive folder '{name}' ({result['id']})")
        return DriveFile(id=result["id"], web_view_link=result.get("webViewLink", ""), name=name)

    async def find_or_create_folder(self, name: str, parent_id: str = "root") -> DriveFile:
        """Return the folder named `name` under `parent_id`, creating it if needed."""
        key = (name, parent_id)
        if key not in self._folders:
            folder = await self.find_folder(name, parent_id)
            if folder is None:
                folder = await self.create_folder(name, parent_id)
            self._folders[key] = folder
        return self._folders[key]

    async def upload(self,
                     name: str,
                     data: bytes,
                     mime_type: str,
                     folder_id: str = "root",
                     convert_to: Optional[str] = None) -> DriveFile:
        """Create a file with content in one multipart request.

        Args:
            name: File name in Drive
            data: File contents
            mime_type: MIME type of `data`
            folder_id: Parent folder
            convert_to: Google Workspace MIME type to convert into, e.g. a Doc

        Returns:
            The created file with its web link
        """
        metadata = {"name": name, "parents": [folder_id]}
        if convert_to:
            metadata["mimeType"] = convert_to

        with aiohttp.MultipartWriter("related") as writer:
            writer.append_json(metadata)
            writer.append(data, {"Content-Type": mime_type})

        params = {"uploadType": "multipart", "supportsAllDrives": "true", "fields": "id, name, webViewLink"}
        logger.info(f"Uploading '{name}' to Drive folder {folder_id} ({len(data)} bytes)")
        async with aiohttp.ClientSession(headers=auth_headers(self.access_token)) as session:
            async with session.post(f"{self.base_url}/upload/drive/v3/files", params=params, data=writer) as response:
                result = await read_json(response, "Drive")

        return DriveFile(id=result["id"], web_view_link=result.get("webViewLink", ""), name=result.get("name", name))

    async def update(self, file_id: str, data: bytes, mime_type: str) -> DriveFile:
        """Replace the content of an existing file."""
        params = {"uploadType": "media", "supportsAllDrives": "true", "fields": "id, name, webViewLink"}
        headers = {"Content-Type": mime_type}
        async with aiohttp.ClientSession(headers=auth_headers(self.access_token)) as session:
            async with session.patch(f"{self.base_url}/upload/drive/v3/files/{file_id}",
                                     params=params, data=data, headers=headers) as response:
                result = await read_json(response, "Drive")

        logger.info(f"Updated Drive file {file_id}")
        return DriveFile(id=result["id"], web_view_link=result.get("webViewLink", ""), name=result.get("name", ""))
