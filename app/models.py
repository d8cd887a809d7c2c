"""Pydantic models describing TorBox inventory and Stremio payloads."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .release_parser import ReleaseDescriptor

ContentType = Literal["movie", "series"]


def _coerce_identifier(value: object) -> object:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(int(value))
    if isinstance(value, str):
        return value.strip()
    return value


class InventoryFile(BaseModel):
    """A single file inside an inventory entry."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    short_name: str | None = None
    size: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> object:
        return _coerce_identifier(value)

    @field_validator("size", mode="before")
    @classmethod
    def _default_size(cls, value: object) -> object:
        return 0 if value is None else value

    def display_name(self) -> str:
        """Return the file name without any parent folders."""

        if self.short_name:
            return self.short_name
        return self.name.rsplit("/", 1)[-1] or self.name


class InventoryEntry(BaseModel):
    """A torrent held by the TorBox account plus engine annotations."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str = "Untitled"
    size: int = 0
    created_at: Any = Field(
        default=None, validation_alias=AliasChoices("created_at", "createdAt")
    )
    updated_at: Any = Field(
        default=None, validation_alias=AliasChoices("updated_at", "updatedAt")
    )
    files: list[InventoryFile] = Field(default_factory=list)

    canonical_id: str | None = None
    descriptor: ReleaseDescriptor | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: object) -> object:
        return _coerce_identifier(value)

    @field_validator("name", mode="before")
    @classmethod
    def _default_name(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "Untitled"
        return value

    @field_validator("size", mode="before")
    @classmethod
    def _default_size(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("files", mode="before")
    @classmethod
    def _default_files(cls, value: object) -> object:
        if not isinstance(value, list):
            return []
        # A file without an ID cannot be linked; drop it rather than the entry.
        return [
            entry
            for entry in value
            if isinstance(entry, dict) and entry.get("id") not in (None, "")
        ]

    @property
    def is_annotated(self) -> bool:
        return self.canonical_id is not None


class CanonicalMediaEntry(BaseModel):
    """A deduplicated title shown in a catalog listing."""

    canonical_id: str
    kind: ContentType
    name: str
    poster: str | None = None
    background: str | None = None
    description: str | None = None
    release_info: str | None = None
    rating: str | None = None
    genres: list[str] = Field(default_factory=list)
    videos: list[dict[str, Any]] = Field(default_factory=list)

    source_inventory_id: str | None = None
    quality: str | None = None
    source_name: str | None = None

    def to_meta_preview(self) -> dict[str, object]:
        """Return a Stremio-compatible meta preview for catalog listings."""

        meta: dict[str, object] = {
            "id": self.canonical_id,
            "type": self.kind,
            "name": self.name,
        }
        if self.poster:
            meta["poster"] = self.poster
        if self.background:
            meta["background"] = self.background
        if self.description:
            meta["description"] = self.description
        if self.release_info:
            meta["releaseInfo"] = self.release_info
        if self.rating:
            meta["imdbRating"] = self.rating
        if self.genres:
            meta["genres"] = list(self.genres)
        return meta

    def to_meta(self) -> dict[str, object]:
        """Return the full meta object served by the meta resource."""

        meta = self.to_meta_preview()
        if self.videos:
            meta["videos"] = [dict(video) for video in self.videos]
        if self.canonical_id.startswith("tt"):
            meta["imdb_id"] = self.canonical_id
        return meta


class PlaybackLink(BaseModel):
    """An ephemeral playback URL issued for one file."""

    url: str
    title: str
    inventory_id: str
    file_id: str | None = None
    name: str = "TorBox"

    def to_stream(self) -> dict[str, object]:
        """Return a Stremio stream object."""

        return {
            "name": self.name,
            "title": self.title,
            "url": self.url,
            "behaviorHints": {
                "notWebReady": False,
                "bingeGroup": f"torbox-{self.inventory_id}",
            },
        }


class AccountSnapshot(BaseModel):
    """Subset of the TorBox ``/user/me`` payload used for status tiles."""

    model_config = ConfigDict(extra="ignore")

    email: str | None = None
    plan: int | str | None = 0
    is_subscribed: bool = False
    premium_expires_at: Any = None
    created_at: Any = None
    server: int | str | None = None
    total_bytes_downloaded: int = 0
    active_torrents: int = 0
    active_usenet_downloads: int = 0
    active_web_downloads: int = 0

    @field_validator(
        "total_bytes_downloaded",
        "active_torrents",
        "active_usenet_downloads",
        "active_web_downloads",
        mode="before",
    )
    @classmethod
    def _default_counter(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("is_subscribed", mode="before")
    @classmethod
    def _default_flag(cls, value: object) -> object:
        return bool(value)
