"""Utility helpers for the TorBox catalog service."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MILLISECONDS_THRESHOLD = 1e12
PLACEHOLDER_POSTER_URL = "https://placehold.co/300x450/{background}/ffffff?text={text}&font=roboto"
BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")
PLAN_NAMES = {
    0: "Free",
    1: "Essential",
    2: "Standard",
    3: "Pro",
}


def parse_timestamp(value: Any) -> datetime | None:
    """Normalise an epoch-ms, epoch-s or ISO-8601 value into an aware datetime.

    Numbers above ``1e12`` are milliseconds, any other number is seconds and
    strings are parsed as ISO-8601. Missing or unparsable values return ``None``.
    """

    if value is None or isinstance(value, bool) or value == "" or value == 0:
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        seconds = value / 1000 if value > MILLISECONDS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def format_bytes(size: Any) -> str:
    """Return a human readable byte count (``1.5 GB``)."""

    try:
        value = float(size or 0)
    except (TypeError, ValueError):
        value = 0.0
    if value <= 0:
        return "0 B"
    index = 0
    while value >= 1024 and index < len(BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {BYTE_UNITS[index]}"


def format_date(value: Any) -> str:
    """Return ``18 October 2026`` style dates or ``N/A``."""

    moment = parse_timestamp(value)
    if moment is None:
        return "N/A"
    return f"{moment.day} {moment:%B %Y}"


def days_remaining(value: Any, *, now: datetime | None = None) -> int:
    """Return the number of whole days left until ``value`` (never negative)."""

    moment = parse_timestamp(value)
    if moment is None:
        return 0
    current = now or datetime.now(timezone.utc)
    seconds = (moment - current).total_seconds()
    return max(0, math.ceil(seconds / 86_400))


def format_relative_date(value: Any, *, now: datetime | None = None) -> str:
    """Describe how long ago ``value`` happened."""

    moment = parse_timestamp(value)
    if moment is None:
        return ""
    current = now or datetime.now(timezone.utc)
    elapsed = (current - moment).total_seconds()
    hours = math.floor(elapsed / 3_600)
    days = math.floor(elapsed / 86_400)
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours}h ago"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} wk ago"
    return format_date(value)


def generate_poster(emoji: str, value: str, background: str = "1a1a2e") -> str:
    """Return a placeholder poster URL rendering ``emoji`` above ``value``."""

    text = quote(f"{emoji}\n{value}", safe="")
    return PLACEHOLDER_POSTER_URL.format(background=background, text=text)


def plan_name(plan_id: Any) -> str:
    """Return the display name of a TorBox plan identifier."""

    try:
        return PLAN_NAMES[int(plan_id)]
    except (KeyError, TypeError, ValueError):
        return f"Plan {plan_id}"
