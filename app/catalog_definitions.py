"""Catalog definitions advertised in the add-on manifest."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


CatalogType = Literal["movie", "series", "other"]


@dataclass(frozen=True)
class CatalogDefinition:
    """Describes a fixed catalog shown in Stremio."""

    key: str
    title: str
    content_type: CatalogType

    def to_manifest_entry(self) -> dict[str, object]:
        """Return a manifest catalog entry."""

        return {
            "type": self.content_type,
            "id": self.key,
            "name": self.title,
            "extra": [],
        }


MOVIES_CATALOG = CatalogDefinition(
    key="torbox-movies",
    title="TorBox Movies",
    content_type="movie",
)
SERIES_CATALOG = CatalogDefinition(
    key="torbox-series",
    title="TorBox Series",
    content_type="series",
)
STATUS_CATALOG = CatalogDefinition(
    key="torbox-status",
    title="TorBox Status",
    content_type="other",
)

CATALOG_DEFINITIONS: tuple[CatalogDefinition, ...] = (
    MOVIES_CATALOG,
    SERIES_CATALOG,
    STATUS_CATALOG,
)
