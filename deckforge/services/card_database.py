"""
Card database service.

Loads HearthstoneJSON card data into an explicitly constructed, load-once
CardDatabase keyed by numeric card id.

LIFECYCLE:
1. Construct an empty CardDatabase
2. Load it exactly once (records, file, or API), possibly from another
   thread or task
3. Read it freely; it never changes afterwards

Readers that may run before loading finishes call wait_until_loaded(),
which blocks until the load completes or raises DatabaseUnavailableError.
"""

import asyncio
import json
import logging
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import httpx

from deckforge.config import settings
from deckforge.models.card import Card, CardType, Rarity
from deckforge.models.failure import FailureKind, KnownError

logger = logging.getLogger(__name__)


class DatabaseUnavailableError(KnownError):
    """The card database did not finish loading, or loading failed."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message="Card data is not available yet.",
            detail=detail,
            suggestion="Retry in a moment.",
            status_code=503,
        )


def parse_card_record(record: dict[str, Any]) -> Card | None:
    """
    Build a Card from one HearthstoneJSON record.

    Returns None for records without a numeric id or a name.
    """
    card_id = record.get("dbfId")
    name = record.get("name")
    if not isinstance(card_id, int) or not name:
        return None

    classes = record.get("classes") or [record.get("cardClass") or "NEUTRAL"]
    class_tags = tuple(str(c).upper() for c in classes if str(c).upper() != "NEUTRAL")

    return Card(
        id=card_id,
        name=str(name),
        mana_cost=int(record.get("cost") or 0),
        card_type=CardType.parse(record.get("type")),
        rarity=Rarity.parse(record.get("rarity")),
        class_tags=class_tags,
        artwork_ref=record.get("id"),
        collectible=bool(record.get("collectible", False)),
    )


class CardDatabase:
    """
    Read-only id -> Card lookup with an explicit load-once lifecycle.

    Thread-safe: loading happens once under a lock and publishes the
    finished mapping; lookups never see a partially loaded database.
    """

    def __init__(self) -> None:
        self._cards: dict[int, Card] = {}
        self._loaded = threading.Event()
        self._lock = threading.Lock()
        self._error: str | None = None

    @classmethod
    def from_cards(cls, cards: Iterable[Card]) -> "CardDatabase":
        """Build an already-loaded database (tests, fixtures)."""
        db = cls()
        db.load_cards(cards)
        return db

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_cards(self, cards: Iterable[Card]) -> None:
        """
        Publish the database contents.

        Raises:
            RuntimeError: If the database was already loaded or failed
        """
        mapping: dict[int, Card] = {}
        for card in cards:
            # First record for an id wins
            mapping.setdefault(card.id, card)

        with self._lock:
            if self._loaded.is_set():
                raise RuntimeError("Card database is already loaded")
            self._cards = mapping
            self._loaded.set()

        logger.info("Card database loaded with %d cards", len(mapping))

    def load_records(self, records: Iterable[dict[str, Any]]) -> None:
        """Load from HearthstoneJSON records, skipping malformed ones."""
        cards = []
        skipped = 0
        for record in records:
            card = parse_card_record(record)
            if card is None:
                skipped += 1
            else:
                cards.append(card)
        if skipped:
            logger.debug("Skipped %d card records without id or name", skipped)
        self.load_cards(cards)

    def load_file(self, path: Path | None = None) -> None:
        """
        Load from a HearthstoneJSON file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file is not valid JSON
        """
        if path is None:
            path = Path(settings.card_data_path)

        if not path.exists():
            raise FileNotFoundError(
                f"Card data not found at {path}. "
                "Run `python -m deckforge.jobs.download_cards` first."
            )

        try:
            with open(path, encoding="utf-8") as f:
                records = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Card data at {path} is corrupted: {e}") from e

        self.load_records(records)

    async def load_from_api(
        self,
        url: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Load straight from the HearthstoneJSON API.

        Raises:
            httpx.HTTPError: If the request fails
        """
        records = await fetch_card_records(url, client)
        self.load_records(records)

    def mark_failed(self, reason: str) -> None:
        """Record that loading failed, waking up any waiting readers."""
        with self._lock:
            if self._loaded.is_set():
                return
            self._error = reason
            self._loaded.set()
        logger.error("Card database failed to load: %s", reason)

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        """True once the database loaded successfully."""
        return self._loaded.is_set() and self._error is None

    @property
    def load_error(self) -> str | None:
        """Why loading failed, if it did."""
        return self._error

    def wait_until_loaded(self, timeout: float | None = None) -> None:
        """
        Block until loading finished.

        Args:
            timeout: Seconds to wait. Defaults to settings.database_load_timeout

        Raises:
            DatabaseUnavailableError: On timeout or if loading failed
        """
        if timeout is None:
            timeout = settings.database_load_timeout

        if not self._loaded.wait(timeout):
            raise DatabaseUnavailableError(f"not loaded after {timeout:g}s")
        if self._error is not None:
            raise DatabaseUnavailableError(self._error)

    def get(self, card_id: int) -> Card | None:
        return self._cards.get(card_id)

    def __contains__(self, card_id: object) -> bool:
        return card_id in self._cards

    def __len__(self) -> int:
        return len(self._cards)

    def __iter__(self) -> Iterator[Card]:
        return iter(self._cards.values())

    def collectible_cards(self) -> list[Card]:
        return [card for card in self._cards.values() if card.collectible]


async def fetch_card_records(
    url: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[dict[str, Any]]:
    """
    Fetch the HearthstoneJSON card list.

    Raises:
        httpx.HTTPError: If the request fails
        ValueError: If the payload is not a list of records
    """
    if url is None:
        url = settings.card_data_url

    if client is None:
        async with httpx.AsyncClient(timeout=60.0, follow_redirects=True) as own_client:
            response = await own_client.get(url)
    else:
        response = await client.get(url)

    response.raise_for_status()
    data = response.json()
    if not isinstance(data, list):
        raise ValueError(f"Unexpected card data payload from {url}")
    return data


async def download_card_database(output_path: Path | None = None, url: str | None = None) -> Path:
    """
    Download the HearthstoneJSON card list to disk.

    Args:
        output_path: Where to save the file. Defaults to settings.card_data_path
        url: Card data URL. Defaults to settings.card_data_url

    Returns:
        Path to downloaded file.

    Raises:
        httpx.HTTPError: If download fails
    """
    if output_path is None:
        output_path = Path(settings.card_data_path)
    if url is None:
        url = settings.card_data_url

    output_path.parent.mkdir(parents=True, exist_ok=True)

    # Stream download (file is tens of MB)
    async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
        async with client.stream("GET", url, timeout=300.0) as response:
            response.raise_for_status()
            with open(output_path, "wb") as f:
                async for chunk in response.aiter_bytes(8192):
                    f.write(chunk)

    return output_path


async def load_card_database(card_db: CardDatabase, path: Path | None = None) -> None:
    """
    Load card data from disk, or from the API when no file exists yet.

    Never raises: a failed load is recorded on the database so waiting
    readers get DatabaseUnavailableError.
    """
    if path is None:
        path = Path(settings.card_data_path)

    try:
        if path.exists():
            await asyncio.to_thread(card_db.load_file, path)
        else:
            logger.info("No card data at %s, fetching from %s", path, settings.card_data_url)
            await card_db.load_from_api()
    except Exception as e:
        card_db.mark_failed(f"{type(e).__name__}: {e}")
