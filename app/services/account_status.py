"""Status tiles describing the TorBox account."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..identifiers import STATUS_ID_PREFIX
from ..models import AccountSnapshot
from ..utils import days_remaining, format_bytes, format_date, generate_poster, plan_name
from .torbox import TorboxClient, UpstreamUnavailable

logger = logging.getLogger(__name__)

STATUS_TYPE = "other"
# stat -> (label, emoji, AccountSnapshot field, poster background)
COUNTER_TILES: dict[str, tuple[str, str, str, str]] = {
    "torrents": ("Torrents", "🌊", "active_torrents", "3d1e5f"),
    "usenet": ("Usenet", "📰", "active_usenet_downloads", "5f1e3d"),
    "web": ("Web DL", "🌐", "active_web_downloads", "1e5f3d"),
}


def _tile(
    stat: str,
    *,
    name: str,
    emoji: str,
    value: str,
    background: str,
    description: str,
    release_info: str | None = None,
) -> dict[str, Any]:
    meta: dict[str, Any] = {
        "id": f"{STATUS_ID_PREFIX}{stat}",
        "type": STATUS_TYPE,
        "name": name,
        "poster": generate_poster(emoji, value, background),
        "description": description,
    }
    if release_info:
        meta["releaseInfo"] = release_info
    return meta


class AccountStatusCatalog:
    """Builds the ``torbox-status`` catalog from ``/user/me``."""

    def __init__(self, client: TorboxClient):
        self._client = client

    async def build_catalog(self) -> list[dict[str, Any]]:
        """Return the status tiles, or a single error tile when TorBox fails."""

        try:
            account = await self._fetch_account()
        except UpstreamUnavailable as exc:
            logger.warning("Unable to load TorBox account status: %s", exc)
            return [self._error_tile(exc)]

        logger.info(
            "TorBox account %s on plan %s, %s day(s) remaining",
            account.email,
            plan_name(account.plan),
            days_remaining(account.premium_expires_at),
        )
        tiles = [self._plan_tile(account), self._cloud_tile(account)]
        tiles.extend(self._counter_tile(stat, account) for stat in COUNTER_TILES)
        tiles.append(self._account_tile(account))
        return tiles

    async def get_meta(self, meta_id: str) -> dict[str, Any] | None:
        """Return the detail view of one status tile."""

        if not meta_id.startswith(STATUS_ID_PREFIX):
            return None
        try:
            account = await self._fetch_account()
        except UpstreamUnavailable as exc:
            logger.warning("Unable to load TorBox account status: %s", exc)
            return None

        stat = meta_id[len(STATUS_ID_PREFIX):]
        if stat == "plan":
            days = days_remaining(account.premium_expires_at)
            name = plan_name(account.plan)
            return _tile(
                stat,
                name=f"{name} - {days} days remaining",
                emoji="📅",
                value=f"{days}d",
                background="16213e",
                description=(
                    f"Plan: {name}\n"
                    f"Expires on: {format_date(account.premium_expires_at)}\n\n"
                    f"Days remaining: {days}"
                ),
            )
        if stat == "cloud":
            used = format_bytes(account.total_bytes_downloaded)
            return _tile(
                stat,
                name=f"Cloud: {used}",
                emoji="💾",
                value=used,
                background="1e3a5f",
                description=f"Total downloaded since the account was created: {used}",
            )
        if stat == "account":
            return _tile(
                stat,
                name=account.email or "Account",
                emoji="👤",
                value="Account",
                background="4a4a4a",
                description=(
                    f"Email: {account.email or 'N/A'}\n"
                    f"Created on: {format_date(account.created_at)}"
                ),
            )
        if stat in COUNTER_TILES:
            return self._counter_tile(stat, account)
        return _tile(
            stat,
            name="Unknown stat",
            emoji="❔",
            value="?",
            background="4a4a4a",
            description="Your account statistics",
        )

    async def _fetch_account(self) -> AccountSnapshot:
        payload = await self._client.fetch_user()
        try:
            return AccountSnapshot.model_validate(payload)
        except ValidationError as exc:
            raise UpstreamUnavailable("Unexpected TorBox account payload") from exc

    @staticmethod
    def _plan_tile(account: AccountSnapshot) -> dict[str, Any]:
        days = days_remaining(account.premium_expires_at)
        name = plan_name(account.plan)
        status = "🟢 Active" if account.is_subscribed else "🔴 Inactive"
        if days > 0:
            days_text, days_display = f"{days}d remaining", f"{days} days"
        elif account.premium_expires_at:
            days_text = days_display = "Expired"
        else:
            days_text, days_display = "Unlimited", "∞"
        return _tile(
            "plan",
            name=f"{name} - {days_text}",
            emoji="📅",
            value=days_display,
            background="16213e",
            description=(
                f"Plan: {name}\nStatus: {status}\n"
                f"Expires on: {format_date(account.premium_expires_at)}"
            ),
            release_info=status,
        )

    @staticmethod
    def _cloud_tile(account: AccountSnapshot) -> dict[str, Any]:
        used = format_bytes(account.total_bytes_downloaded)
        return _tile(
            "cloud",
            name=f"Cloud: {used}",
            emoji="💾",
            value=used,
            background="1e3a5f",
            description=f"Space used: {used}\nTotal downloaded: {used}",
            release_info=used,
        )

    @staticmethod
    def _counter_tile(stat: str, account: AccountSnapshot) -> dict[str, Any]:
        label, emoji, field_name, background = COUNTER_TILES[stat]
        count = getattr(account, field_name)
        return _tile(
            stat,
            name=f"{label}: {count} active",
            emoji=emoji,
            value=str(count),
            background=background,
            description=f"Active {label.lower()} downloads: {count}",
            release_info=f"{count} active",
        )

    @staticmethod
    def _account_tile(account: AccountSnapshot) -> dict[str, Any]:
        email = account.email or "N/A"
        return _tile(
            "account",
            name=f"Account: {email}",
            emoji="👤",
            value="Account",
            background="4a4a4a",
            description=(
                f"Email: {email}\n"
                f"Created on: {format_date(account.created_at)}\n"
                f"Server: {account.server or 'Auto'}"
            ),
            release_info=email,
        )

    @staticmethod
    def _error_tile(exc: Exception) -> dict[str, Any]:
        return _tile(
            "error",
            name="Connection error",
            emoji="❌",
            value="Error",
            background="ff0000",
            description=(
                "Unable to load your TorBox account.\n\n"
                f"Error: {exc}\n\nCheck your API key."
            ),
        )
