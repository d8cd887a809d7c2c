"""Stream resolution tests for fallback and IMDb canonical IDs."""

from __future__ import annotations

from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from app.services.inventory import InventoryCache
from app.services.metadata_addon import MetadataResolver
from app.services.streams import StreamResolver
from app.services.torbox import UpstreamUnavailable


class StubTorboxClient:
    """In-memory TorBox double issuing predictable download links."""

    def __init__(self, torrents: list[dict[str, Any]]) -> None:
        self.torrents = torrents
        self.fail_listing = False
        self.failing_files: set[str] = set()
        self.link_requests: list[tuple[str, str | None]] = []

    async def list_torrents(self) -> list[dict[str, Any]]:
        if self.fail_listing:
            raise UpstreamUnavailable("TorBox API error: 500", status_code=500)
        return [dict(entry) for entry in self.torrents]

    async def request_download_link(
        self, torrent_id: str, file_id: str | None = None
    ) -> str:
        self.link_requests.append((torrent_id, file_id))
        if file_id in self.failing_files:
            raise UpstreamUnavailable("TorBox API error: 500", status_code=500)
        suffix = f"/{file_id}" if file_id is not None else ""
        return f"https://dl.example/{torrent_id}{suffix}"


def metadata_handler(request: httpx.Request) -> httpx.Response:
    path = unquote(request.url.path)
    if "search=Inception" in path:
        return httpx.Response(200, json={"metas": [{"id": "tt1375666", "name": "Inception"}]})
    if "search=Breaking Bad" in path:
        return httpx.Response(200, json={"metas": [{"id": "tt0903747", "name": "Breaking Bad"}]})
    return httpx.Response(200, json={"metas": []})


def build_resolver(
    torrents: list[dict[str, Any]],
) -> tuple[StreamResolver, InventoryCache, StubTorboxClient, httpx.AsyncClient]:
    client = StubTorboxClient(torrents)
    inventory = InventoryCache(client)  # type: ignore[arg-type]
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(metadata_handler))
    metadata = MetadataResolver(http_client, "https://cinemeta.example.com")
    resolver = StreamResolver(inventory, metadata, client, concurrency=2)  # type: ignore[arg-type]
    return resolver, inventory, client, http_client


def movie_entry(entry_id: int, name: str, files: list[str]) -> dict[str, Any]:
    return {
        "id": entry_id,
        "name": name,
        "files": [{"id": index, "name": f"{name}/{file}"} for index, file in enumerate(files)],
    }


@pytest.mark.anyio("asyncio")
async def test_fallback_id_returns_only_that_entry() -> None:
    torrents = [
        movie_entry(1, "Home.Video.2019", ["part1.mkv", "part2.mp4", "cover.jpg"]),
        movie_entry(2, "Home.Video.2019", ["copy.mkv"]),
    ]
    resolver, _, client, http_client = build_resolver(torrents)
    async with http_client:
        links = await resolver.resolve_streams("tbhistory:1")

    assert [link.url for link in links] == ["https://dl.example/1/0", "https://dl.example/1/1"]
    assert {request[0] for request in client.link_requests} == {"1"}
    assert links[0].to_stream()["behaviorHints"] == {
        "notWebReady": False,
        "bingeGroup": "torbox-1",
    }


@pytest.mark.anyio("asyncio")
async def test_fallback_id_can_target_one_file() -> None:
    torrents = [movie_entry(1, "Show.S01", ["Show.S01E01.mkv", "Show.S01E02.mkv"])]
    resolver, _, _, http_client = build_resolver(torrents)
    async with http_client:
        links = await resolver.resolve_streams("tbhistory:1:1")
        missing = await resolver.resolve_streams("tbhistory:1:9")

    assert [link.file_id for link in links] == ["1"]
    assert missing == []


@pytest.mark.anyio("asyncio")
async def test_entry_without_video_files_yields_nothing() -> None:
    torrents = [movie_entry(1, "Ebook.Collection", ["book.pdf", "notes.txt"])]
    resolver, _, client, http_client = build_resolver(torrents)
    async with http_client:
        assert await resolver.resolve_streams("tbhistory:1") == []

    assert client.link_requests == []


@pytest.mark.anyio("asyncio")
async def test_entry_without_file_list_gets_single_link() -> None:
    resolver, _, client, http_client = build_resolver([{"id": 3, "name": "Pending.Movie.2020"}])
    async with http_client:
        links = await resolver.resolve_streams("tbhistory:3")

    assert [link.url for link in links] == ["https://dl.example/3"]
    assert client.link_requests == [("3", None)]


@pytest.mark.anyio("asyncio")
async def test_failed_links_are_skipped_and_order_kept() -> None:
    files = ["a.mkv", "b.mkv", "c.mkv", "d.mkv"]
    resolver, _, client, http_client = build_resolver([movie_entry(1, "Clips", files)])
    client.failing_files = {"1"}
    async with http_client:
        links = await resolver.resolve_streams("tbhistory:1")

    assert [link.file_id for link in links] == ["0", "2", "3"]
    assert [link.title for link in links] == ["a.mkv", "c.mkv", "d.mkv"]


@pytest.mark.anyio("asyncio")
async def test_imdb_id_uses_existing_annotations() -> None:
    torrents = [
        movie_entry(1, "Inception.2010.1080p", ["Inception.2010.1080p.mkv"]),
        movie_entry(2, "Inception.2010.2160p", ["Inception.2010.2160p.mkv"]),
        movie_entry(3, "Other.Movie", ["other.mkv"]),
    ]
    resolver, inventory, _, http_client = build_resolver(torrents)
    await inventory.refresh()
    inventory.annotate("1", "tt1375666", None)
    inventory.annotate("2", "tt1375666", None)
    async with http_client:
        links = await resolver.resolve_streams("tt1375666")

    assert [link.inventory_id for link in links] == ["1", "2"]
    assert links[0].title == "1080p • Inception.2010.1080p.mkv"
    assert links[1].title == "2160p • Inception.2010.2160p.mkv"


@pytest.mark.anyio("asyncio")
async def test_imdb_id_resolves_unannotated_entries() -> None:
    torrents = [
        movie_entry(7, "Unknown.Thing", ["thing.mkv"]),
        movie_entry(8, "Inception.2010.720p", ["Inception.mkv"]),
    ]
    resolver, inventory, _, http_client = build_resolver(torrents)
    async with http_client:
        links = await resolver.resolve_streams("tt1375666")

    assert [link.inventory_id for link in links] == ["8"]
    entry = inventory.get("8")
    assert entry is not None and entry.canonical_id == "tt1375666"


@pytest.mark.anyio("asyncio")
async def test_episode_ids_select_matching_file() -> None:
    torrents = [
        movie_entry(
            4,
            "Breaking.Bad.S01.1080p",
            ["Breaking.Bad.S01E01.mkv", "Breaking.Bad.S01E02.mkv", "Breaking.Bad.S01E03.mkv"],
        )
    ]
    resolver, _, _, http_client = build_resolver(torrents)
    async with http_client:
        episode = await resolver.resolve_streams("tt0903747:1:2")
        whole = await resolver.resolve_streams("tt0903747")
        absent = await resolver.resolve_streams("tt0903747:2:1")

    assert [link.file_id for link in episode] == ["1"]
    assert len(whole) == 3
    assert absent == []


@pytest.mark.anyio("asyncio")
async def test_unknown_ids_and_failures_return_empty() -> None:
    resolver, _, client, http_client = build_resolver([movie_entry(1, "A", ["a.mkv"])])
    async with http_client:
        assert await resolver.resolve_streams("kitsu:123") == []
        assert await resolver.resolve_streams("tbhistory:404") == []
        client.fail_listing = True
        assert await resolver.resolve_streams("tt1375666") == []


@pytest.mark.anyio("asyncio")
async def test_entries_without_files_respect_episode_markers() -> None:
    torrents = [
        {"id": 1, "name": "Breaking.Bad.S01E01.1080p.mkv"},
        {"id": 2, "name": "Breaking.Bad.S01E02.1080p.mkv"},
    ]
    resolver, _, _, http_client = build_resolver(torrents)
    async with http_client:
        whole = await resolver.resolve_streams("tt0903747")
        second = await resolver.resolve_streams("tt0903747:1:2")
        second_again = await resolver.resolve_streams("tt0903747:1:2")
        other_season = await resolver.resolve_streams("tt0903747:2:2")

    assert [link.inventory_id for link in whole] == ["1"]
    assert [link.inventory_id for link in second] == ["2"]
    assert [link.inventory_id for link in second_again] == ["2"]
    assert other_season == []


@pytest.mark.anyio("asyncio")
async def test_one_torrent_per_episode_finds_requested_episode() -> None:
    torrents = [
        movie_entry(1, "Breaking.Bad.S01E01.720p", ["Breaking.Bad.S01E01.720p.mkv"]),
        movie_entry(2, "Breaking.Bad.S01E02.720p", ["Breaking.Bad.S01E02.720p.mkv"]),
    ]
    resolver, inventory, _, http_client = build_resolver(torrents)
    async with http_client:
        second = await resolver.resolve_streams("tt0903747:1:2")
        first = await resolver.resolve_streams("tt0903747:1:1")

    assert [(link.inventory_id, link.file_id) for link in second] == [("2", "0")]
    assert [(link.inventory_id, link.file_id) for link in first] == [("1", "0")]
    assert [entry.id for entry in inventory.find_by_canonical_id("tt0903747")] == ["1", "2"]
