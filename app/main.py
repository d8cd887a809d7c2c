"""Entry point for the FastAPI-powered Stremio addon."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .identifiers import FALLBACK_ID_PREFIX, STATUS_ID_PREFIX
from .services.account_status import AccountStatusCatalog
from .services.addon import AddonService
from .services.catalog import CatalogAssembler
from .services.inventory import InventoryCache
from .services.metadata_addon import MetadataResolver
from .services.streams import StreamResolver
from .services.torbox import TorboxClient

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

ADDON_ID = "community.torbox.catalog"
ADDON_VERSION = "1.3.0"

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    torbox_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.torbox_api_url),
            timeout=httpx.Timeout(settings.torbox_timeout_seconds, connect=10.0),
        )
    )
    metadata_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            timeout=httpx.Timeout(settings.metadata_timeout_seconds),
        )
    )

    torbox = TorboxClient(settings, torbox_http_client)
    inventory = InventoryCache(torbox)
    resolver = MetadataResolver(
        metadata_http_client,
        str(settings.metadata_addon_url),
        timeout=settings.metadata_timeout_seconds,
    )
    fastapi_app.state.addon_service = AddonService(
        settings,
        CatalogAssembler(inventory, resolver, limit=settings.catalog_limit),
        StreamResolver(
            inventory,
            resolver,
            torbox,
            concurrency=settings.stream_concurrency,
        ),
        AccountStatusCatalog(torbox),
    )

    logger.info(
        "%s listening on port %s (metadata: %s, API key %s)",
        settings.app_name,
        settings.server_port,
        resolver.base_url,
        "configured" if settings.has_api_key else "missing",
    )
    if not settings.has_api_key:
        logger.warning("TORBOX_API_KEY is not set; catalogs and streams will be empty")

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Browse and play your TorBox downloads from Stremio",
        version=ADDON_VERSION,
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_addon_service(app: FastAPI) -> AddonService:
    service = getattr(app.state, "addon_service", None)
    if not isinstance(service, AddonService):
        raise RuntimeError("Add-on service not initialised")
    return service


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    @fastapi_app.get("/health")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "addon": ADDON_ID}

    @fastapi_app.get("/manifest.json")
    async def manifest() -> dict[str, Any]:
        service = get_addon_service(fastapi_app)
        return {
            "id": ADDON_ID,
            "version": ADDON_VERSION,
            "name": settings.app_name,
            "description": "Your TorBox downloads matched to Cinemeta titles, plus account stats.",
            "logo": "https://torbox.app/favicon.ico",
            "catalogs": service.manifest_catalogs(),
            "resources": ["catalog", "meta", "stream"],
            "types": ["movie", "series", "other"],
            "idPrefixes": ["tt", FALLBACK_ID_PREFIX, STATUS_ID_PREFIX],
        }

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}.json")
    async def catalog(content_type: str, catalog_id: str) -> JSONResponse:
        service = get_addon_service(fastapi_app)
        return JSONResponse(await service.catalog_payload(content_type, catalog_id))

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}/{extra}.json")
    async def catalog_with_extra(
        content_type: str, catalog_id: str, extra: str
    ) -> JSONResponse:
        # No extras are advertised and listings are capped, so later pages are empty.
        logger.debug("Ignoring catalog extra %s for %s/%s", extra, content_type, catalog_id)
        return JSONResponse({"metas": []})

    @fastapi_app.get("/meta/{content_type}/{meta_id}.json")
    async def meta(content_type: str, meta_id: str) -> JSONResponse:
        service = get_addon_service(fastapi_app)
        return JSONResponse(await service.meta_payload(content_type, meta_id))

    @fastapi_app.get("/stream/{content_type}/{stream_id}.json")
    async def stream(content_type: str, stream_id: str) -> JSONResponse:
        service = get_addon_service(fastapi_app)
        return JSONResponse(await service.stream_payload(content_type, stream_id))


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
