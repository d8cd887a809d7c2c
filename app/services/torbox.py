"""Utilities for communicating with the TorBox API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class TorboxError(Exception):
    """Base class for TorBox client failures."""


class UpstreamUnavailable(TorboxError):
    """TorBox could not be reached or answered with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ConfigMissing(UpstreamUnavailable):
    """No TorBox API key is configured."""


class TorboxClient:
    """Thin wrapper around the TorBox HTTP API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    @property
    def api_key(self) -> str:
        key = (self._settings.torbox_api_key or "").strip()
        if not key:
            raise ConfigMissing("TORBOX_API_KEY is not configured")
        return key

    def _headers(self, api_key: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "User-Agent": f"{self._settings.app_name} (torbox-catalog)",
        }

    async def fetch_user(self) -> dict[str, Any]:
        """Return the account information of the authenticated user."""

        data = await self._get("/user/me")
        if not isinstance(data, dict):
            raise UpstreamUnavailable("Unexpected TorBox user payload")
        return data

    async def list_torrents(self) -> list[dict[str, Any]]:
        """Return the full torrent list, bypassing the TorBox server cache."""

        data = await self._get("/torrents/mylist", params={"bypass_cache": "true"})
        if data is None:
            return []
        if not isinstance(data, list):
            raise UpstreamUnavailable("Unexpected TorBox torrent list payload")
        return [entry for entry in data if isinstance(entry, dict)]

    async def request_download_link(
        self, torrent_id: str | int, file_id: str | int | None = None
    ) -> str:
        """Ask TorBox for a temporary download URL for a torrent or one of its files."""

        params: dict[str, Any] = {
            "token": self.api_key,
            "torrent_id": torrent_id,
        }
        if file_id is not None and file_id != "":
            params["file_id"] = file_id
        data = await self._get("/torrents/requestdl", params=params)
        if not isinstance(data, str) or not data:
            raise UpstreamUnavailable(
                f"TorBox returned no download link for torrent {torrent_id}"
            )
        return data

    async def _get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        api_key = self.api_key
        try:
            response = await self._client.get(
                path, params=params, headers=self._headers(api_key)
            )
        except httpx.HTTPError as exc:
            logger.warning("TorBox request to %s failed: %s", path, exc)
            raise UpstreamUnavailable(
                f"TorBox request failed: {exc.__class__.__name__}"
            ) from exc

        if response.status_code >= 400:
            logger.warning(
                "TorBox request to %s returned %s", path, response.status_code
            )
            raise UpstreamUnavailable(
                f"TorBox API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("TorBox returned a non-JSON response") from exc
        if not isinstance(payload, dict):
            raise UpstreamUnavailable("Unexpected TorBox response structure")
        if payload.get("success") is False:
            detail = payload.get("detail") or payload.get("error") or "unknown error"
            raise UpstreamUnavailable(f"TorBox API error: {detail}")
        return payload.get("data")
