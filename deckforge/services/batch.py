"""
Batch deck processing.

Runs decode -> resolve -> render for many deck codes at once. Each entry
succeeds or fails on its own; the report keeps input order.

INVARIANTS:
1. One bad entry never aborts the batch
2. Known errors keep their classification; anything else is UNKNOWN
3. results[i] always belongs to entries[i]
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from deckforge.config import settings
from deckforge.models.deck import Layout, ResolvedDeck
from deckforge.models.failure import FailureDetail, FailureKind, KnownError, OutcomeType
from deckforge.parsers.deck_code import decode
from deckforge.rendering.deck_image import RenderedDeck, render_deck
from deckforge.services.asset_store import AssetStore
from deckforge.services.card_database import CardDatabase
from deckforge.services.deck_resolver import DeckResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BatchEntry:
    """One deck code to process, with an optional display title."""

    code: str
    title: str | None = None

    @classmethod
    def parse_line(cls, line: str) -> "BatchEntry":
        """
        Parse a "[title:]code" line.

        Deck codes never contain a colon, so everything before the last
        colon is the title.
        """
        title, sep, code = line.strip().rpartition(":")
        if not sep:
            return cls(code=code)
        return cls(code=code.strip(), title=title.strip() or None)


@dataclass
class BatchEntryResult:
    index: int
    entry: BatchEntry
    resolved: ResolvedDeck | None = None
    rendered: RenderedDeck | None = None
    failure: FailureDetail | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def outcome(self) -> OutcomeType:
        if self.failure is None:
            return OutcomeType.SUCCESS
        if self.failure.kind is FailureKind.UNKNOWN:
            return OutcomeType.UNKNOWN_FAILURE
        return OutcomeType.KNOWN_FAILURE


@dataclass
class BatchReport:
    """Per-entry results in input order."""

    results: list[BatchEntryResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[BatchEntryResult]:
        return [r for r in self.results if r.ok]

    @property
    def failed(self) -> list[BatchEntryResult]:
        return [r for r in self.results if not r.ok]

    def summary(self) -> str:
        degraded = sum(1 for r in self.succeeded if r.rendered and r.rendered.degraded)
        return (
            f"{len(self.results)} decks: {len(self.succeeded)} rendered "
            f"({degraded} with placeholder tiles), {len(self.failed)} failed"
        )


def _process_entry(
    index: int,
    entry: BatchEntry,
    resolver: DeckResolver,
    assets: AssetStore | None,
    layout: Layout,
    format_tag: int | None,
) -> BatchEntryResult:
    result = BatchEntryResult(index=index, entry=entry)
    try:
        deck = decode(entry.code)
        if format_tag is not None:
            deck.format_tag = format_tag
        result.resolved = resolver.resolve(deck, title=entry.title)
        result.rendered = render_deck(result.resolved, layout, assets)
    except KnownError as e:
        logger.info("Batch entry %d failed: %s", index, e.message)
        result.failure = e.to_detail()
    except Exception as e:
        logger.exception("Batch entry %d failed unexpectedly", index)
        result.failure = FailureDetail.from_exception(e)
    return result


def process_batch(
    entries: Sequence[BatchEntry],
    card_db: CardDatabase,
    assets: AssetStore | None,
    layout: Layout,
    max_workers: int | None = None,
    format_tag: int | None = None,
) -> BatchReport:
    """
    Decode, resolve and render every entry.

    Args:
        entries: Deck codes to process
        card_db: Card database (waited on if still loading)
        assets: Artwork source; may be None for the TEXT layout
        layout: Layout for every render
        max_workers: Entries processed at once. Defaults to settings.batch_workers
        format_tag: Replaces every code's own format tag when given

    Returns:
        BatchReport with one result per entry, in input order
    """
    resolver = DeckResolver(card_db)
    workers = max_workers or settings.batch_workers

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(
            pool.map(
                lambda item: _process_entry(item[0], item[1], resolver, assets, layout, format_tag),
                enumerate(entries),
            )
        )

    report = BatchReport(results=results)
    logger.info("Batch finished: %s", report.summary())
    return report
