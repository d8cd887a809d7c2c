"""Resolve release descriptors against a Cinemeta-compatible metadata add-on."""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)

SearchKey = tuple[str, str, int | None]


@dataclass(slots=True)
class CanonicalRecord:
    """Represents the useful fields returned from a metadata lookup."""

    id: str
    type: str
    name: str
    year: int | None = None
    poster: str | None = None
    background: str | None = None
    description: str | None = None
    release_info: str | None = None
    imdb_rating: str | None = None
    genres: list[str] = field(default_factory=list)
    videos: list[dict[str, Any]] = field(default_factory=list)


class ResolutionStatus(str, enum.Enum):
    MATCHED = "matched"
    NO_MATCH = "no_match"
    UPSTREAM_FAILED = "upstream_failed"


@dataclass(slots=True, frozen=True)
class Resolution:
    """Outcome of a metadata lookup."""

    status: ResolutionStatus
    record: CanonicalRecord | None = None

    @classmethod
    def matched(cls, record: CanonicalRecord) -> "Resolution":
        return cls(ResolutionStatus.MATCHED, record)

    @classmethod
    def no_match(cls) -> "Resolution":
        return cls(ResolutionStatus.NO_MATCH)

    @classmethod
    def failed(cls) -> "Resolution":
        return cls(ResolutionStatus.UPSTREAM_FAILED)

    @property
    def found(self) -> bool:
        return self.status is ResolutionStatus.MATCHED and self.record is not None


class MetadataResolver:
    """Wrapper around Cinemeta-compatible search and meta endpoints.

    Search results are cached by ``(kind, title, year)`` including empty
    results; records are cached by ID. Upstream failures are never cached.
    """

    _SEARCH_PATH = "/catalog/{type}/top/search={query}.json"
    _META_PATH = "/meta/{type}/{id}.json"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str | None,
        *,
        timeout: float = 5.0,
    ) -> None:
        self._client = http_client
        self._base_url = self._normalize_base_url(base_url)
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(8)
        self._search_cache: dict[SearchKey, CanonicalRecord | None] = {}
        self._id_cache: dict[str, CanonicalRecord | None] = {}
        # IDs whose cache entry came from the meta endpoint rather than a search.
        self._full_ids: set[str] = set()

    @property
    def base_url(self) -> str | None:
        """Return the metadata add-on URL, if configured."""

        return self._base_url

    def cached_record(self, canonical_id: str) -> CanonicalRecord | None:
        return self._id_cache.get(canonical_id)

    async def search_by_title(
        self,
        title: str,
        kind: str,
        year: int | None = None,
    ) -> Resolution:
        """Return the best metadata match for the given title/year."""

        normalized_title = (title or "").strip()
        if not normalized_title:
            return Resolution.no_match()

        key: SearchKey = (kind, normalized_title.casefold(), year)
        if key in self._search_cache:
            cached = self._search_cache[key]
            return Resolution.matched(cached) if cached else Resolution.no_match()

        path = self._SEARCH_PATH.format(
            type=kind,
            query=quote(normalized_title, safe=""),
        )
        payload = await self._fetch(path, normalized_title)
        if payload is None:
            return Resolution.failed()

        metas = payload.get("metas")
        if not isinstance(metas, list):
            metas = []
        candidates = [
            meta
            for meta in metas
            if isinstance(meta, dict) and self._candidate_id(meta)
        ]
        match = self._select_best_match(year, candidates)
        if match is None:
            self._search_cache[key] = None
            return Resolution.no_match()

        record = self._to_record(match, kind, normalized_title)
        self._search_cache[key] = record
        self._id_cache.setdefault(record.id, record)
        return Resolution.matched(record)

    async def get_by_id(self, kind: str, canonical_id: str) -> Resolution:
        """Return the record for ``canonical_id``, fetching it once.

        Series records cached from a search lack episode ``videos``, so a
        series lookup fetches the full meta once before trusting the cache.
        """

        identifier = (canonical_id or "").strip()
        if not identifier:
            return Resolution.no_match()
        if identifier in self._id_cache and (
            kind != "series" or identifier in self._full_ids
        ):
            cached = self._id_cache[identifier]
            return Resolution.matched(cached) if cached else Resolution.no_match()

        path = self._META_PATH.format(type=kind, id=quote(identifier, safe=""))
        payload = await self._fetch(path, identifier)
        if payload is None:
            preview = self._id_cache.get(identifier)
            return Resolution.matched(preview) if preview else Resolution.failed()

        meta = payload.get("meta")
        self._full_ids.add(identifier)
        if not isinstance(meta, dict) or not self._candidate_id(meta):
            self._id_cache[identifier] = None
            return Resolution.no_match()

        record = self._to_record(meta, kind, identifier)
        record.id = identifier
        self._id_cache[identifier] = record
        return Resolution.matched(record)

    async def _fetch(self, path: str, label: str) -> dict[str, Any] | None:
        if not self._base_url:
            logger.warning("Metadata add-on URL is not configured")
            return None
        url = f"{self._base_url}{path}"
        try:
            async with self._semaphore:
                response = await self._client.get(url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            logger.warning(
                "Metadata add-on lookup failed for %s via %s: %s",
                label,
                self._base_url,
                exc,
            )
            return None
        except ValueError:
            logger.warning("Metadata add-on returned invalid JSON for %s", label)
            return None
        if not isinstance(payload, dict):
            return None
        return payload

    def _select_best_match(
        self,
        year: int | None,
        candidates: list[dict[str, Any]],
    ) -> dict[str, Any] | None:
        if not candidates:
            return None
        if year is not None:
            for meta in candidates:
                if self._parse_year(meta.get("releaseInfo") or meta.get("year")) == year:
                    return meta
        return candidates[0]

    def _to_record(
        self, meta: dict[str, Any], kind: str, fallback_name: str
    ) -> CanonicalRecord:
        release_info = meta.get("releaseInfo") or meta.get("year")
        genres = meta.get("genres") or meta.get("genre") or []
        videos = meta.get("videos") or []
        rating = meta.get("imdbRating")
        return CanonicalRecord(
            id=self._candidate_id(meta),
            type=str(meta.get("type") or kind),
            name=str(meta.get("name") or fallback_name),
            year=self._parse_year(release_info),
            poster=self._ensure_url(meta.get("poster") or meta.get("thumbnail")),
            background=self._ensure_url(meta.get("background") or meta.get("fanart")),
            description=str(meta["description"]) if meta.get("description") else None,
            release_info=str(release_info) if release_info else None,
            imdb_rating=str(rating) if rating not in (None, "") else None,
            genres=[str(genre) for genre in genres if genre] if isinstance(genres, list) else [],
            videos=[video for video in videos if isinstance(video, dict)]
            if isinstance(videos, list)
            else [],
        )

    @staticmethod
    def _candidate_id(meta: dict[str, Any]) -> str:
        return str(meta.get("imdb_id") or meta.get("id") or "").strip()

    @staticmethod
    def _parse_year(value: Any) -> int | None:
        if isinstance(value, int):
            return value
        if not value:
            return None
        text = str(value)
        match = re.search(r"(19|20|21)\d{2}", text)
        if not match:
            return None
        try:
            year = int(match.group(0))
        except ValueError:
            return None
        if 1900 <= year <= 2100:
            return year
        return None

    @staticmethod
    def _ensure_url(value: Any) -> str | None:
        if isinstance(value, str) and value.startswith("http"):
            return value
        return None

    @staticmethod
    def _normalize_base_url(value: str | None) -> str | None:
        if not value:
            return None
        normalized = value.strip()
        if not normalized:
            return None
        normalized = normalized.split("?", 1)[0].rstrip("/")
        lowered = normalized.lower()
        for suffix in ("/manifest.json", "/manifest"):
            if lowered.endswith(suffix):
                normalized = normalized[: -len(suffix)].rstrip("/")
                break
        return normalized or None
