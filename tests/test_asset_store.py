"""Tests for the tile artwork store."""

import threading
import time
from pathlib import Path

import httpx
import pytest
import respx

from deckforge.models.card import placeholder_card
from deckforge.services.asset_store import AssetFetchError, TileArtStore
from tests.conftest import FIREBALL, RAGNAROS, artwork_png

TEMPLATE = "https://art.example.test/tiles/{card_code}.png"
RAGNAROS_URL = "https://art.example.test/tiles/EX1_298.png"


@pytest.fixture
def png() -> bytes:
    return artwork_png()


class TestTileArtStore:
    @respx.mock
    def test_downloads_once_and_caches(self, tmp_path: Path, png: bytes) -> None:
        """Artwork is downloaded once, then served from memory and disk."""
        route = respx.get(RAGNAROS_URL).mock(return_value=httpx.Response(200, content=png))

        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:
            assert store.fetch(RAGNAROS) == png
            assert store.fetch(RAGNAROS) == png

        assert route.call_count == 1
        assert (tmp_path / "EX1_298.png").read_bytes() == png

    @respx.mock
    def test_reads_disk_cache(self, tmp_path: Path, png: bytes) -> None:
        """A cached file is used without any request."""
        (tmp_path / "EX1_298.png").write_bytes(png)

        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:
            assert store.fetch(RAGNAROS) == png

        assert len(respx.calls) == 0

    @respx.mock
    def test_http_error(self, tmp_path: Path) -> None:
        """HTTP failures raise AssetFetchError for that card."""
        respx.get(RAGNAROS_URL).mock(return_value=httpx.Response(404))

        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:
            with pytest.raises(AssetFetchError) as exc_info:
                store.fetch(RAGNAROS)

        assert exc_info.value.card == RAGNAROS
        assert not (tmp_path / "EX1_298.png").exists()

    @respx.mock
    def test_failure_is_not_cached(self, tmp_path: Path, png: bytes) -> None:
        """A later fetch retries after a failure."""
        respx.get(RAGNAROS_URL).mock(
            side_effect=[httpx.Response(500), httpx.Response(200, content=png)]
        )

        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:
            with pytest.raises(AssetFetchError):
                store.fetch(RAGNAROS)
            assert store.fetch(RAGNAROS) == png

    def test_card_without_artwork(self, tmp_path: Path) -> None:
        """Placeholder cards have nothing to fetch."""
        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:
            with pytest.raises(AssetFetchError):
                store.fetch(placeholder_card(424242))

    @respx.mock
    def test_concurrent_fetches_share_one_download(self, tmp_path: Path, png: bytes) -> None:
        """Callers asking for the same card at once wait for one request."""

        def slow_response(request: httpx.Request) -> httpx.Response:
            time.sleep(0.1)
            return httpx.Response(200, content=png)

        route = respx.get(RAGNAROS_URL).mock(side_effect=slow_response)
        results: list[bytes] = []
        barrier = threading.Barrier(8)

        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:

            def worker() -> None:
                barrier.wait()
                results.append(store.fetch(RAGNAROS))

            threads = [threading.Thread(target=worker) for _ in range(8)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert route.call_count == 1
        assert results == [png] * 8

    @respx.mock
    def test_different_cards_fetch_independently(self, tmp_path: Path, png: bytes) -> None:
        """One card failing does not affect another."""
        respx.get(RAGNAROS_URL).mock(return_value=httpx.Response(404))
        respx.get("https://art.example.test/tiles/CS2_029.png").mock(
            return_value=httpx.Response(200, content=png)
        )

        with TileArtStore(cache_dir=tmp_path, url_template=TEMPLATE) as store:
            with pytest.raises(AssetFetchError):
                store.fetch(RAGNAROS)
            assert store.fetch(FIREBALL) == png
