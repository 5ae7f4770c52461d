"""
Card artwork store.

Read-through cache for card tile artwork: memory, then disk, then the
artwork host. Safe to share between rendering threads.

INVARIANTS:
1. At most one in-flight fetch per card; concurrent callers wait for it
2. At most max_concurrency downloads run at once
3. A failed fetch raises AssetFetchError for that card only
"""

import logging
import os
import tempfile
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Protocol

import httpx

from deckforge.config import settings
from deckforge.models.card import Card
from deckforge.models.failure import FailureKind, KnownError

logger = logging.getLogger(__name__)


class AssetFetchError(KnownError):
    """Artwork for a card could not be fetched."""

    def __init__(self, card: Card, reason: str) -> None:
        self.card = card
        self.reason = reason
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=f"Could not fetch artwork for {card.name}.",
            detail=reason,
            status_code=502,
        )


class AssetStore(Protocol):
    """Anything that returns image bytes for a card."""

    def fetch(self, card: Card) -> bytes:
        """
        Raises:
            AssetFetchError: If the artwork is unavailable
        """
        ...


class TileArtStore:
    """
    Tile artwork from a URL template, cached on disk.

    Usage:
        with TileArtStore() as store:
            png = store.fetch(card)
    """

    def __init__(
        self,
        cache_dir: Path | None = None,
        url_template: str | None = None,
        client: httpx.Client | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self._cache_dir = Path(cache_dir or settings.asset_cache_dir)
        self._url_template = url_template or settings.tile_art_url
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=settings.asset_fetch_timeout,
            follow_redirects=True,
        )
        self._downloads = threading.BoundedSemaphore(
            max_concurrency or settings.asset_fetch_concurrency
        )
        self._lock = threading.Lock()
        self._memory: dict[str, bytes] = {}
        self._in_flight: dict[str, Future[bytes]] = {}

    def __enter__(self) -> "TileArtStore":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def fetch(self, card: Card) -> bytes:
        key = card.artwork_ref
        if not key:
            raise AssetFetchError(card, "card has no artwork reference")

        with self._lock:
            cached = self._memory.get(key)
            if cached is not None:
                return cached
            future = self._in_flight.get(key)
            owner = future is None
            if future is None:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            try:
                return future.result()
            except AssetFetchError as e:
                raise AssetFetchError(card, e.reason) from e

        try:
            data = self._load(card, key)
        except Exception as e:
            # Waiters must be released whatever went wrong
            future.set_exception(e)
            raise
        else:
            future.set_result(data)
            with self._lock:
                self._memory[key] = data
            return data
        finally:
            with self._lock:
                self._in_flight.pop(key, None)

    def _cache_path(self, key: str) -> Path:
        return self._cache_dir / f"{key}.png"

    def _load(self, card: Card, key: str) -> bytes:
        path = self._cache_path(key)
        if path.exists():
            return path.read_bytes()

        url = self._url_template.format(card_code=key)
        with self._downloads:
            try:
                response = self._client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning("Artwork download failed for %s: %s", key, e)
                raise AssetFetchError(card, str(e)) from e

        data = response.content
        self._write_cache(path, data)
        return data

    def _write_cache(self, path: Path, data: bytes) -> None:
        """Write through a temp file so readers never see a partial image."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except OSError as e:
            # Cache is best effort; the bytes are still served from memory
            logger.warning("Could not cache artwork at %s: %s", path, e)
