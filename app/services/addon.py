"""Stremio resource handlers backed by the TorBox catalog engine."""

from __future__ import annotations

import logging
from typing import Any

from ..catalog_definitions import CatalogDefinition
from ..config import Settings
from ..identifiers import STATUS_ID_PREFIX
from .account_status import STATUS_TYPE, AccountStatusCatalog
from .catalog import CatalogAssembler
from .streams import StreamResolver

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("movie", "series")


class AddonService:
    """Dispatches catalog, meta and stream requests by type and ID shape."""

    def __init__(
        self,
        settings: Settings,
        assembler: CatalogAssembler,
        streams: StreamResolver,
        status: AccountStatusCatalog,
    ):
        self._settings = settings
        self._assembler = assembler
        self._streams = streams
        self._status = status

    def manifest_catalogs(self) -> list[dict[str, object]]:
        """Return manifest entries for the configured catalogs."""

        return [
            definition.to_manifest_entry()
            for definition in self._settings.catalog_definitions
        ]

    def _find_catalog(self, content_type: str, catalog_id: str) -> CatalogDefinition | None:
        for definition in self._settings.catalog_definitions:
            if definition.key == catalog_id and definition.content_type == content_type:
                return definition
        return None

    async def catalog_payload(self, content_type: str, catalog_id: str) -> dict[str, Any]:
        definition = self._find_catalog(content_type, catalog_id)
        if definition is None:
            logger.info("Unknown catalog %s/%s requested", content_type, catalog_id)
            return {"metas": []}
        if definition.content_type == STATUS_TYPE:
            return {"metas": await self._status.build_catalog()}
        entries = await self._assembler.build_catalog(definition.content_type)
        return {"metas": [entry.to_meta_preview() for entry in entries]}

    async def meta_payload(self, content_type: str, meta_id: str) -> dict[str, Any]:
        if content_type == STATUS_TYPE and meta_id.startswith(STATUS_ID_PREFIX):
            return {"meta": await self._status.get_meta(meta_id)}
        if content_type not in MEDIA_TYPES:
            return {"meta": None}
        entry = await self._assembler.get_entry(content_type, meta_id)
        return {"meta": entry.to_meta() if entry is not None else None}

    async def stream_payload(self, content_type: str, stream_id: str) -> dict[str, Any]:
        if content_type not in MEDIA_TYPES:
            return {"streams": []}
        links = await self._streams.resolve_streams(stream_id)
        return {"streams": [link.to_stream() for link in links]}
