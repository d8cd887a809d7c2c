"""In-memory mirror of the TorBox torrent list."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from ..models import InventoryEntry
from ..release_parser import ReleaseDescriptor
from .torbox import TorboxClient

logger = logging.getLogger(__name__)


class InventoryCache:
    """Keyed store of inventory entries with resolution annotations.

    Every refresh replaces the store with the latest snapshot. Annotations
    (``canonical_id``/``descriptor``) survive for entries whose ID recurs.
    """

    def __init__(self, client: TorboxClient):
        self._client = client
        self._entries: dict[str, InventoryEntry] = {}

    async def refresh(self) -> list[InventoryEntry]:
        """Pull the full inventory; raises ``UpstreamUnavailable`` on failure."""

        payload = await self._client.list_torrents()
        snapshot: dict[str, InventoryEntry] = {}
        for raw in payload:
            try:
                entry = InventoryEntry.model_validate(raw)
            except ValidationError as exc:
                logger.warning("Skipping malformed inventory entry: %s", exc)
                continue
            previous = self._entries.get(entry.id)
            if previous is not None and previous.is_annotated:
                entry.canonical_id = previous.canonical_id
                entry.descriptor = previous.descriptor
            snapshot[entry.id] = entry
        self._entries = snapshot
        logger.debug("Inventory refreshed with %s entries", len(snapshot))
        return list(snapshot.values())

    def get(self, entry_id: str) -> InventoryEntry | None:
        return self._entries.get(str(entry_id))

    async def get_or_refresh(self, entry_id: str) -> InventoryEntry | None:
        """Return the entry, refreshing once when it is not cached yet."""

        entry = self.get(entry_id)
        if entry is None:
            logger.info("Inventory entry %s not cached, refreshing", entry_id)
            await self.refresh()
            entry = self.get(entry_id)
        return entry

    def entries(self) -> list[InventoryEntry]:
        return list(self._entries.values())

    def annotate(
        self,
        entry_id: str,
        canonical_id: str,
        descriptor: ReleaseDescriptor | None,
    ) -> bool:
        """Record the resolved canonical ID; the first resolution wins."""

        entry = self._entries.get(str(entry_id))
        if entry is None or entry.is_annotated:
            return False
        entry.canonical_id = canonical_id
        entry.descriptor = descriptor
        return True

    def find_by_canonical_id(self, canonical_id: str) -> list[InventoryEntry]:
        """Return annotated entries for ``canonical_id`` in store order."""

        return [
            entry
            for entry in self._entries.values()
            if entry.canonical_id == canonical_id
        ]

    def __len__(self) -> int:
        return len(self._entries)
