"""Helpers for the canonical ID shapes understood by the add-on."""

from __future__ import annotations

import re
from dataclasses import dataclass

FALLBACK_ID_PREFIX = "tbhistory:"
STATUS_ID_PREFIX = "tbstatus:"

_IMDB_ID_RE = re.compile(r"^(tt\d+)(?::(\d+):(\d+))?$")
_FALLBACK_ID_RE = re.compile(r"^" + re.escape(FALLBACK_ID_PREFIX) + r"([^:]+)(?::([^:]+))?$")


@dataclass(frozen=True, slots=True)
class ImdbReference:
    """An authoritative ID, optionally pointing at one series episode."""

    imdb_id: str
    season: int | None = None
    episode: int | None = None


@dataclass(frozen=True, slots=True)
class FallbackReference:
    """A synthetic ID scoped to one inventory entry (and optionally one file)."""

    inventory_id: str
    file_id: str | None = None


def fallback_id(inventory_id: str, file_id: str | None = None) -> str:
    base = f"{FALLBACK_ID_PREFIX}{inventory_id}"
    return f"{base}:{file_id}" if file_id is not None else base


def parse_fallback_id(value: str) -> FallbackReference | None:
    match = _FALLBACK_ID_RE.match(value or "")
    if not match:
        return None
    return FallbackReference(inventory_id=match.group(1), file_id=match.group(2))


def parse_imdb_id(value: str) -> ImdbReference | None:
    """Parse ``tt123`` or the ``tt123:1:2`` episode form sent for series."""

    match = _IMDB_ID_RE.match(value or "")
    if not match:
        return None
    season, episode = match.group(2), match.group(3)
    return ImdbReference(
        imdb_id=match.group(1),
        season=int(season) if season is not None else None,
        episode=int(episode) if episode is not None else None,
    )
