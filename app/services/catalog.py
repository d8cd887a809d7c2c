"""Assemble deduplicated catalogs from the TorBox inventory."""

from __future__ import annotations

import logging
from datetime import datetime

from ..identifiers import fallback_id, parse_fallback_id, parse_imdb_id
from ..models import CanonicalMediaEntry, ContentType, InventoryEntry
from ..release_parser import (
    ReleaseDescriptor,
    extract_quality,
    is_video_file,
    parse_release_name,
)
from ..utils import (
    EPOCH,
    format_bytes,
    format_relative_date,
    generate_poster,
    parse_timestamp,
)
from .inventory import InventoryCache
from .metadata_addon import CanonicalRecord, MetadataResolver
from .torbox import UpstreamUnavailable

logger = logging.getLogger(__name__)

FALLBACK_POSTER_BACKGROUND = "2d4a3e"


def recency(entry: InventoryEntry) -> datetime:
    """Sort key: last update, then creation time, then the epoch."""

    return parse_timestamp(entry.updated_at) or parse_timestamp(entry.created_at) or EPOCH


class CatalogAssembler:
    """Turns inventory entries into one catalog entry per distinct title."""

    def __init__(
        self,
        inventory: InventoryCache,
        resolver: MetadataResolver,
        *,
        limit: int = 20,
    ):
        self._inventory = inventory
        self._resolver = resolver
        self._limit = limit

    async def build_catalog(self, kind: ContentType) -> list[CanonicalMediaEntry]:
        """Return at most ``limit`` entries of ``kind``, most recent first."""

        try:
            entries = await self._inventory.refresh()
        except UpstreamUnavailable as exc:
            logger.warning("Inventory unavailable, returning empty %s catalog: %s", kind, exc)
            return []

        ordered = sorted(entries, key=recency, reverse=True)
        emitted: set[str] = set()
        results: list[CanonicalMediaEntry] = []
        for entry in ordered:
            if len(results) >= self._limit:
                break
            try:
                media = await self._resolve_entry(entry, kind, emitted)
            except Exception:
                logger.exception("Skipping inventory entry %s (%s)", entry.id, entry.name)
                continue
            if media is None:
                continue
            emitted.add(media.canonical_id)
            results.append(media)

        logger.info(
            "Built %s catalog with %s entries from %s inventory items",
            kind,
            len(results),
            len(entries),
        )
        return results

    async def get_entry(
        self, kind: ContentType, canonical_id: str
    ) -> CanonicalMediaEntry | None:
        """Return the detail of one catalog entry, or ``None`` when unknown."""

        imdb = parse_imdb_id(canonical_id)
        if imdb is not None:
            resolution = await self._resolver.get_by_id(kind, imdb.imdb_id)
            if not resolution.found:
                return None
            return self._from_record(resolution.record, kind)

        reference = parse_fallback_id(canonical_id)
        if reference is None:
            return None
        try:
            entry = await self._inventory.get_or_refresh(reference.inventory_id)
        except UpstreamUnavailable as exc:
            logger.warning("Inventory unavailable for %s: %s", canonical_id, exc)
            return None
        if entry is None:
            return None
        descriptor = entry.descriptor or parse_release_name(entry.name)
        media = self.fallback_entry(entry, descriptor)
        if media.kind == "series":
            media.videos = self._episode_videos(entry, descriptor)
        return media

    async def _resolve_entry(
        self,
        entry: InventoryEntry,
        kind: ContentType,
        emitted: set[str],
    ) -> CanonicalMediaEntry | None:
        descriptor = parse_release_name(entry.name)
        if descriptor.kind != kind:
            return None

        resolution = await self._resolver.search_by_title(
            descriptor.title, descriptor.kind, descriptor.year
        )
        if resolution.found:
            record = resolution.record
            # Duplicates are annotated too so every variant stays streamable.
            self._inventory.annotate(entry.id, record.id, descriptor)
            if record.id in emitted:
                return None
            return self._from_record(record, kind, entry=entry, descriptor=descriptor)

        if fallback_id(entry.id) in emitted:
            return None
        return self.fallback_entry(entry, descriptor)

    def fallback_entry(
        self, entry: InventoryEntry, descriptor: ReleaseDescriptor
    ) -> CanonicalMediaEntry:
        """Describe an entry that has no metadata match."""

        quality = descriptor.quality or extract_quality(entry.name)
        size = format_bytes(entry.size)
        added = format_relative_date(entry.updated_at or entry.created_at)
        description_lines = [f"Size: {size}"]
        if added:
            description_lines.append(f"Added: {added}")
        description_lines.extend(["", f"Release: {entry.name}"])
        return CanonicalMediaEntry(
            canonical_id=fallback_id(entry.id),
            kind=descriptor.kind,
            name=descriptor.title,
            poster=generate_poster("🎬", quality or size, FALLBACK_POSTER_BACKGROUND),
            description="\n".join(description_lines),
            release_info=str(descriptor.year) if descriptor.year else quality or size,
            source_inventory_id=entry.id,
            quality=quality,
            source_name=entry.name,
        )

    def _from_record(
        self,
        record: CanonicalRecord,
        kind: ContentType,
        *,
        entry: InventoryEntry | None = None,
        descriptor: ReleaseDescriptor | None = None,
    ) -> CanonicalMediaEntry:
        quality: str | None = None
        if entry is not None:
            quality = (descriptor.quality if descriptor else None) or extract_quality(
                entry.name
            )
        return CanonicalMediaEntry(
            canonical_id=record.id,
            kind=kind,
            name=record.name,
            poster=record.poster,
            background=record.background,
            description=record.description,
            release_info=record.release_info,
            rating=record.imdb_rating,
            genres=list(record.genres),
            videos=[dict(video) for video in record.videos],
            source_inventory_id=entry.id if entry is not None else None,
            quality=quality,
            source_name=entry.name if entry is not None else None,
        )

    def _episode_videos(
        self, entry: InventoryEntry, descriptor: ReleaseDescriptor
    ) -> list[dict[str, object]]:
        released = recency(entry).isoformat()
        videos: list[dict[str, object]] = []
        files = [file for file in entry.files if is_video_file(file.name)]
        for index, file in enumerate(files, start=1):
            parsed = parse_release_name(file.display_name())
            videos.append(
                {
                    "id": fallback_id(entry.id, file.id),
                    "title": file.display_name(),
                    "season": parsed.season or descriptor.season or 1,
                    "episode": parsed.episode or index,
                    "released": released,
                }
            )
        return videos
