"""Gemini generation backend using the File API and streamed content generation."""

import json
import logging
from typing import Any, AsyncIterator, Dict, List

import aiohttp

from ..models.generation import FileState, GenerationPayload, UploadedFile
from .base import AbstractGenerator

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiAPIError(Exception):
    """Non-success response from the Gemini REST API."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"Gemini API error: {status} - {message}")


class GeminiGenerator(AbstractGenerator):
    """Uploads artifacts to the Gemini File API and streams generated minutes."""

    def __init__(self, api_key: str, model: str = "gemini-flash-latest", base_url: str = DEFAULT_BASE_URL):
        """Initialize Gemini generator.

        Args:
            api_key: Gemini API key
            model: Model used for generation
            base_url: API root, overridable for testing
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

        logger.info(f"GeminiGenerator initialized with model: {model}")

    async def upload(self, display_name: str, data: bytes, mime_type: str) -> UploadedFile:
        url = f"{self.base_url}/upload/v1beta/files?key={self.api_key}"

        with aiohttp.MultipartWriter("related") as writer:
            writer.append_json({"file": {"displayName": display_name}})
            writer.append(data, {"Content-Type": mime_type})

        logger.info(f"Uploading {display_name} ({len(data)} bytes, {mime_type})")
        async with aiohttp.ClientSession() as session:
            async with session.post(url, data=writer, headers={"X-Goog-Upload-Protocol": "multipart"}) as response:
                if response.status != 200:
                    raise GeminiAPIError(response.status, await response.text())
                result = await response.json()

        file_info = result["file"]
        uploaded = UploadedFile(
            name=file_info["name"],
            uri=file_info["uri"],
            mime_type=file_info.get("mimeType", mime_type),
            display_name=file_info.get("displayName", display_name),
            state=FileState(file_info.get("state", FileState.PROCESSING.value)),
        )
        logger.info(f"Uploaded {display_name} as {uploaded.name} ({uploaded.state.value})")
        return uploaded

    async def get_file_state(self, file: UploadedFile) -> FileState:
        url = f"{self.base_url}/v1beta/{file.name}?key={self.api_key}"
        async with aiohttp.ClientSession() as session:
            async with session.get(url) as response:
                if response.status != 200:
                    raise GeminiAPIError(response.status, await response.text())
                result = await response.json()
        return FileState(result.get("state", FileState.PROCESSING.value))

    async def stream(self, payload: GenerationPayload) -> AsyncIterator[str]:
        url = (f"{self.base_url}/v1beta/models/{self.model}:streamGenerateContent"
               f"?alt=sse&key={self.api_key}")
        body = {"contents": [{"role": "user", "parts": self._build_parts(payload)}]}

        async with aiohttp.ClientSession() as session:
            async with session.post(url, json=body) as response:
                if response.status != 200:
                    raise GeminiAPIError(response.status, await response.text())

                async for raw_line in response.content:
                    line = raw_line.decode("utf-8").strip()
                    if not line.startswith("data:"):
                        continue
                    text = self._chunk_text(json.loads(line[len("data:"):]))
                    if text:
                        yield text

    def _build_parts(self, payload: GenerationPayload) -> List[Dict[str, Any]]:
        parts: List[Dict[str, Any]] = [{"text": payload.instructions}]

        if payload.audio is not None:
            parts.append(self._file_part(payload.audio))
            parts.append({"text": "メインの会議音声です。"})

        if payload.speakers is not None and not payload.speakers.is_empty:
            parts.append({"text": "## 話者付き文字起こし\n各発言の話者名を維持してください：\n\n"
                                  + payload.speakers.formatted_transcript})

        if payload.transcript:
            parts.append({"text": f"参考テキスト（事前の議題など）:\n{payload.transcript}"})

        for uploaded in payload.files:
            parts.append(self._file_part(uploaded))
            parts.append({"text": f"会議の補足資料「{uploaded.display_name}」です。"})
        return parts

    @staticmethod
    def _file_part(file: UploadedFile) -> Dict[str, Any]:
        return {"fileData": {"mimeType": file.mime_type, "fileUri": file.uri}}

    @staticmethod
    def _chunk_text(event: Dict[str, Any]) -> str:
        candidates = event.get("candidates") or []
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)
