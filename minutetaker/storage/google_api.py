"""Shared helpers for Google REST calls made with aiohttp."""

from typing import Dict

import aiohttp


class GoogleAPIError(Exception):
    """Non-success response from a Google REST endpoint."""

    def __init__(self, service: str, status: int, message: str):
        self.service = service
        self.status = status
        super().__init__(f"{service} API error: {status} - {message}")


def auth_headers(access_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


async def read_json(response: aiohttp.ClientResponse, service: str) -> dict:
    """Return the JSON body, raising GoogleAPIError for non-2xx responses."""
    if response.status >= 300:
        raise GoogleAPIError(service, response.status, await response.text())
    return await response.json()
