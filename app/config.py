"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Iterable, Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .catalog_definitions import CATALOG_DEFINITIONS, CatalogDefinition


DEFAULT_CATALOG_KEYS: tuple[str, ...] = tuple(
    definition.key for definition in CATALOG_DEFINITIONS
)
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="TorBox Catalog", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=7003, alias="PORT")

    torbox_api_key: str | None = Field(default=None, alias="TORBOX_API_KEY")
    torbox_api_url: HttpUrl = Field(
        default="https://api.torbox.app/v1/api", alias="TORBOX_API_URL"
    )
    torbox_timeout_seconds: float = Field(
        default=20.0, alias="TORBOX_TIMEOUT", gt=0, le=120
    )

    metadata_addon_url: HttpUrl = Field(
        default="https://v3-cinemeta.strem.io",
        alias="METADATA_ADDON_URL",
        validation_alias=AliasChoices("METADATA_ADDON_URL", "CINEMETA_API_URL"),
    )
    metadata_timeout_seconds: float = Field(
        default=5.0, alias="METADATA_TIMEOUT", gt=0, le=60
    )

    catalog_keys: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_CATALOG_KEYS,
        alias="CATALOG_KEYS",
    )
    catalog_limit: int = Field(default=20, alias="CATALOG_LIMIT", ge=1, le=100)
    stream_concurrency: int = Field(
        default=4, alias="STREAM_CONCURRENCY", ge=1, le=16
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    environment: Literal["development", "production"] = Field(
        default="production", alias="ENVIRONMENT"
    )

    @field_validator("catalog_keys", mode="before")
    @classmethod
    def _parse_catalog_keys(cls, value: object) -> tuple[str, ...]:
        """Normalise catalog key selections from environment values."""

        if value is None:
            return DEFAULT_CATALOG_KEYS
        if isinstance(value, str):
            raw_values = [part.strip() for part in value.split(",")]
        elif isinstance(value, Iterable):
            raw_values = [str(part).strip() for part in value]
        else:
            raise TypeError("CATALOG_KEYS must be a string or iterable of strings")

        cleaned: list[str] = []
        for entry in raw_values:
            if not entry:
                continue
            slug = entry.replace("_", "-").replace(" ", "-").lower()
            slug = "-".join(filter(None, slug.split("-")))
            if not slug:
                continue
            if slug not in DEFAULT_CATALOG_KEYS:
                raise ValueError("Unknown catalog keys configured")
            if slug not in cleaned:
                cleaned.append(slug)
        if not cleaned:
            return DEFAULT_CATALOG_KEYS
        return tuple(cleaned)

    @field_validator("log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return level

    @property
    def catalog_definitions(self) -> tuple[CatalogDefinition, ...]:
        """Return ordered catalog definitions for the selected keys."""

        definition_map = {definition.key: definition for definition in CATALOG_DEFINITIONS}
        return tuple(definition_map[key] for key in self.catalog_keys)

    @property
    def has_api_key(self) -> bool:
        return bool((self.torbox_api_key or "").strip())

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
