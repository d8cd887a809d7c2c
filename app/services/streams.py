"""Map canonical IDs back to inventory entries and issue playback links."""

from __future__ import annotations

import asyncio
import logging

from ..identifiers import ImdbReference, parse_fallback_id, parse_imdb_id
from ..models import InventoryEntry, InventoryFile, PlaybackLink
from ..release_parser import extract_quality, is_video_file, parse_release_name
from .inventory import InventoryCache
from .metadata_addon import MetadataResolver
from .torbox import TorboxClient, UpstreamUnavailable

logger = logging.getLogger(__name__)


class StreamResolver:
    """Resolves playback links for fallback and IMDb canonical IDs."""

    def __init__(
        self,
        inventory: InventoryCache,
        resolver: MetadataResolver,
        client: TorboxClient,
        *,
        concurrency: int = 4,
    ):
        self._inventory = inventory
        self._resolver = resolver
        self._client = client
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def resolve_streams(self, canonical_id: str) -> list[PlaybackLink]:
        """Return playback links for ``canonical_id``; never raises upstream errors."""

        try:
            return await self._resolve(canonical_id)
        except UpstreamUnavailable as exc:
            logger.warning("Cannot resolve streams for %s: %s", canonical_id, exc)
            return []

    async def _resolve(self, canonical_id: str) -> list[PlaybackLink]:
        fallback = parse_fallback_id(canonical_id)
        if fallback is not None:
            entry = await self._inventory.get_or_refresh(fallback.inventory_id)
            if entry is None:
                logger.info("Inventory entry %s not found", fallback.inventory_id)
                return []
            files = self._video_files(entry)
            if fallback.file_id is not None:
                files = [file for file in files if file.id == fallback.file_id]
                if not files:
                    return []
            return await self._links_for_entry(entry, files)

        imdb = parse_imdb_id(canonical_id)
        if imdb is None:
            return []

        await self._inventory.refresh()
        links = await self._links_for_reference(
            self._inventory.find_by_canonical_id(imdb.imdb_id), imdb
        )
        if not links:
            links = await self._scan_unannotated(imdb)
        logger.info("%s stream(s) available for %s", len(links), canonical_id)
        return links

    async def _scan_unannotated(self, reference: ImdbReference) -> list[PlaybackLink]:
        """Resolve un-annotated entries until one yields links for ``reference``."""

        for entry in self._inventory.entries():
            if entry.is_annotated:
                continue
            descriptor = parse_release_name(entry.name)
            resolution = await self._resolver.search_by_title(
                descriptor.title, descriptor.kind, descriptor.year
            )
            if not resolution.found:
                continue
            self._inventory.annotate(entry.id, resolution.record.id, descriptor)
            if resolution.record.id != reference.imdb_id:
                continue
            links = await self._links_for_reference([entry], reference)
            if links:
                return links
        return []

    async def _links_for_reference(
        self, entries: list[InventoryEntry], reference: ImdbReference
    ) -> list[PlaybackLink]:
        links: list[PlaybackLink] = []
        for entry in entries:
            if not entry.files:
                if self._name_matches_episode(entry.name, reference):
                    links.extend(await self._links_for_entry(entry, []))
                continue
            files = self._select_episode(self._video_files(entry), reference)
            if files:
                links.extend(await self._links_for_entry(entry, files))
        return links

    @staticmethod
    def _name_matches_episode(name: str, reference: ImdbReference) -> bool:
        """Reject names whose own season/episode markers point elsewhere."""

        if reference.season is None or reference.episode is None:
            return True
        parsed = parse_release_name(name)
        if parsed.season is not None and parsed.season != reference.season:
            return False
        return parsed.episode is None or parsed.episode == reference.episode

    @staticmethod
    def _video_files(entry: InventoryEntry) -> list[InventoryFile]:
        return [file for file in entry.files if is_video_file(file.name)]

    @staticmethod
    def _select_episode(
        files: list[InventoryFile], reference: ImdbReference
    ) -> list[InventoryFile]:
        """Keep files matching the requested episode when names carry markers."""

        if reference.season is None or reference.episode is None:
            return files
        labelled: list[InventoryFile] = []
        has_markers = False
        for file in files:
            parsed = parse_release_name(file.display_name())
            if parsed.episode is None:
                continue
            has_markers = True
            if parsed.episode == reference.episode and parsed.season in (
                None,
                reference.season,
            ):
                labelled.append(file)
        return labelled if has_markers else files

    async def _links_for_entry(
        self, entry: InventoryEntry, files: list[InventoryFile]
    ) -> list[PlaybackLink]:
        if not entry.files:
            link = await self._issue_link(entry, None)
            return [link] if link is not None else []

        results = await asyncio.gather(
            *(self._issue_link(entry, file) for file in files)
        )
        return [link for link in results if link is not None]

    async def _issue_link(
        self, entry: InventoryEntry, file: InventoryFile | None
    ) -> PlaybackLink | None:
        label = file.display_name() if file is not None else entry.name
        try:
            async with self._semaphore:
                url = await self._client.request_download_link(
                    entry.id, file.id if file is not None else None
                )
        except UpstreamUnavailable as exc:
            target = f"file {file.id}" if file is not None else "torrent"
            logger.warning(
                "Download link failed for entry %s %s: %s", entry.id, target, exc
            )
            return None

        quality = extract_quality(label)
        return PlaybackLink(
            url=url,
            title=f"{quality} • {label}" if quality else label,
            inventory_id=entry.id,
            file_id=file.id if file is not None else None,
        )
