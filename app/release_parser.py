"""Parse free-text release names into structured descriptors."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from guessit import guessit

logger = logging.getLogger(__name__)

ContentKind = Literal["movie", "series"]

QUALITY_TAGS: tuple[str, ...] = (
    "2160p",
    "4K",
    "UHD",
    "1080p",
    "720p",
    "480p",
    "HDR",
    "DV",
    "REMUX",
)
VIDEO_EXTENSIONS: tuple[str, ...] = (".mkv", ".mp4", ".avi", ".mov", ".wmv", ".webm")


@dataclass(slots=True)
class ReleaseDescriptor:
    """Structured view of a release name."""

    title: str
    year: int | None = None
    season: int | None = None
    episode: int | None = None
    quality: str | None = None
    kind: ContentKind = "movie"


def extract_quality(name: str) -> str | None:
    """Return the highest priority quality tag contained in ``name``."""

    upper = (name or "").upper()
    for tag in QUALITY_TAGS:
        if tag.upper() in upper:
            return tag
    return None


def is_video_file(name: str) -> bool:
    return (name or "").lower().endswith(VIDEO_EXTENSIONS)


def _first_number(value: Any) -> int | None:
    # guessit reports multi-episode and multi-season releases as lists.
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def parse_release_name(name: str) -> ReleaseDescriptor:
    """Return a descriptor for ``name``; never raises.

    Title, year, season and episode come from guessit. Quality uses the ranked
    ``QUALITY_TAGS`` vocabulary so every caller labels streams the same way.
    """

    raw = name if isinstance(name, str) else str(name or "")
    fallback_title = raw.strip() or "Untitled"
    if not raw.strip():
        return ReleaseDescriptor(title=fallback_title)

    try:
        info = guessit(raw)
    except Exception as exc:
        logger.warning("Unable to parse release name %r: %s", raw, exc)
        return ReleaseDescriptor(title=fallback_title, quality=extract_quality(raw))

    title = info.get("title")
    if not isinstance(title, str) or not title.strip():
        title = fallback_title
    season = _first_number(info.get("season"))
    episode = _first_number(info.get("episode"))
    year = _first_number(info.get("year"))

    kind: ContentKind = "series" if season is not None or episode is not None else "movie"
    return ReleaseDescriptor(
        title=title.strip(),
        year=year,
        season=season,
        episode=episode,
        quality=extract_quality(raw),
        kind=kind,
    )
