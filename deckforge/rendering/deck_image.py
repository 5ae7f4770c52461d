"""
Deck image composition.

Renders a ResolvedDeck in one of four layouts:

- GROUPS: one column per mana-cost bucket, sideboards in a last column
- WIDE: row-major grid sized to a target width
- SINGLE: one column, rotated 90 degrees
- TEXT: plain text, no artwork

Raster renders run in three phases: artwork is fetched with bounded
concurrency, tiles are drawn on a thread pool, then the canvas (whose size
is fixed up front) is assembled in a fixed order. A missing artwork only
degrades its own tile.
"""

import io
import logging
import math
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from PIL import Image, ImageDraw

from deckforge.config import settings
from deckforge.models.card import CLASS_COLORS, NEUTRAL_COLOR, Card
from deckforge.models.deck import DeckEntry, Layout, ResolvedDeck
from deckforge.models.failure import KnownError
from deckforge.rendering.tiles import (
    COLORS,
    COLUMN_WIDTH,
    HEADING_SIZE,
    MARGIN,
    ROW_HEIGHT,
    TILE_HEIGHT,
    get_font,
    load_artwork,
    render_heading,
    render_tile,
)
from deckforge.services.asset_store import AssetStore

logger = logging.getLogger(__name__)

HEADER_HEIGHT = ROW_HEIGHT + MARGIN
FOOTER_HEIGHT = 4 * MARGIN

# Narrow SINGLE renders (few or no cards) still get room for the header
MIN_CANVAS_WIDTH = COLUMN_WIDTH + MARGIN

PNG_MEDIA_TYPE = "image/png"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class AssetFetchDegraded:
    """A tile drawn with placeholder fill because its artwork was unavailable."""

    card_id: int
    card_name: str
    reason: str


@dataclass
class RenderedDeck:
    """Output of a render: image or text bytes plus degradation warnings."""

    data: bytes
    media_type: str
    layout: Layout
    size: tuple[int, int] | None = None
    warnings: list[AssetFetchDegraded] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)


# =============================================================================
# SLOTS
# =============================================================================


@dataclass(frozen=True, slots=True)
class _TileSlot:
    card: Card
    count: int


@dataclass(frozen=True, slots=True)
class _HeadingSlot:
    text: str


_Slot = _TileSlot | _HeadingSlot


def _flow_slots(deck: ResolvedDeck) -> list[_Slot]:
    """Main deck tiles, then a heading and tiles per sideboard."""
    slots: list[_Slot] = [_TileSlot(e.card, e.count) for e in deck.ordered_cards()]
    for owner, entries in deck.sideboard_groups():
        slots.append(_HeadingSlot(f"> {owner.name}"))
        slots.extend(_TileSlot(e.card, e.count) for e in entries)
    return slots


def cost_bucket_labels(bounds: Sequence[int]) -> list[str]:
    """Column labels for bucket lower bounds, e.g. [0, 1, 7] -> ["0", "1-6", "7+"]."""
    ordered = sorted(set(bounds))
    labels = []
    for i, low in enumerate(ordered):
        if i == len(ordered) - 1:
            labels.append(f"{low}+")
        elif ordered[i + 1] - 1 == low:
            labels.append(str(low))
        else:
            labels.append(f"{low}-{ordered[i + 1] - 1}")
    return labels


def cost_bucket(mana_cost: int, bounds: Sequence[int]) -> int:
    """Index of the bucket holding a cost; costs below the first bound go first."""
    ordered = sorted(set(bounds))
    index = 0
    for i, low in enumerate(ordered):
        if mana_cost >= low:
            index = i
    return index


def _group_columns(deck: ResolvedDeck, bounds: Sequence[int]) -> list[list[_Slot]]:
    """Non-empty cost columns (label first), then a sideboard column if any."""
    ordered_bounds = sorted(set(bounds)) or [0]
    labels = cost_bucket_labels(ordered_bounds)
    buckets: list[list[_Slot]] = [[] for _ in ordered_bounds]

    for entry in deck.ordered_cards():
        buckets[cost_bucket(entry.card.mana_cost, ordered_bounds)].append(
            _TileSlot(entry.card, entry.count)
        )

    columns: list[list[_Slot]] = [
        [_HeadingSlot(labels[i]), *bucket] for i, bucket in enumerate(buckets) if bucket
    ]

    sideboard_column: list[_Slot] = []
    for owner, entries in deck.sideboard_groups():
        sideboard_column.append(_HeadingSlot(f"> {owner.name}"))
        sideboard_column.extend(_TileSlot(e.card, e.count) for e in entries)
    if sideboard_column:
        columns.append(sideboard_column)

    return columns or [[]]


def _wide_columns(target_width: int | None = None) -> int:
    if target_width is None:
        target_width = settings.wide_target_width
    return max(1, target_width // COLUMN_WIDTH)


def _placements(
    deck: ResolvedDeck,
    layout: Layout,
    bounds: Sequence[int] | None = None,
) -> tuple[list[tuple[_Slot, int, int]], int, int]:
    """
    Slot positions as (slot, column, row), plus the grid's column and row count.
    """
    if layout is Layout.GROUPS:
        columns = _group_columns(deck, settings.group_cost_buckets if bounds is None else bounds)
        placed = [(slot, col, row) for col, column in enumerate(columns) for row, slot in enumerate(column)]
        return placed, len(columns), max(len(column) for column in columns)

    slots = _flow_slots(deck)
    col_count = 1 if layout is Layout.SINGLE else _wide_columns()
    rows = math.ceil(len(slots) / col_count)
    placed = [(slot, i % col_count, i // col_count) for i, slot in enumerate(slots)]
    return placed, col_count, rows


def canvas_size(deck: ResolvedDeck, layout: Layout, bounds: Sequence[int] | None = None) -> tuple[int, int]:
    """
    Final image size for a raster layout, computed before any drawing.

    Raises:
        ValueError: For the TEXT layout
    """
    if layout is Layout.TEXT:
        raise ValueError("TEXT layout has no canvas")

    _, cols, rows = _placements(deck, layout, bounds)
    return _canvas_size(layout, cols, rows)


def _body_size(cols: int, rows: int) -> tuple[int, int]:
    """Tile area before any rotation."""
    return cols * COLUMN_WIDTH + MARGIN, rows * ROW_HEIGHT


def _canvas_size(layout: Layout, cols: int, rows: int) -> tuple[int, int]:
    body_width, body_height = _body_size(cols, rows)
    if layout is Layout.SINGLE:
        body_width, body_height = body_height, body_width
    return max(body_width, MIN_CANVAS_WIDTH), HEADER_HEIGHT + body_height + FOOTER_HEIGHT


# =============================================================================
# DRAWING
# =============================================================================


def _fetch_artwork(
    cards: list[Card],
    assets: AssetStore,
    max_workers: int,
) -> tuple[dict[int, Image.Image], list[AssetFetchDegraded]]:
    """Fetch artwork for each card; failures become warnings, not errors."""

    def fetch(card: Card) -> Image.Image | str:
        if not card.artwork_ref:
            return "no artwork reference"
        try:
            return load_artwork(assets.fetch(card))
        except KnownError as e:
            return e.detail or e.message
        except Exception as e:
            # Stores are injected; any failure only degrades this tile
            return f"{type(e).__name__}: {e}"

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(fetch, cards))

    artwork: dict[int, Image.Image] = {}
    warnings: list[AssetFetchDegraded] = []
    for card, result in zip(cards, results):
        if isinstance(result, Image.Image):
            artwork[card.id] = result
        else:
            logger.warning("Using placeholder tile for %s (%d): %s", card.name, card.id, result)
            warnings.append(AssetFetchDegraded(card_id=card.id, card_name=card.name, reason=result))
    return artwork, warnings


def _draw_header(img: Image.Image, deck: ResolvedDeck) -> None:
    draw = ImageDraw.Draw(img)
    font = get_font(HEADING_SIZE)
    title = f"{deck.display_title}  ({deck.card_count()} cards)"
    _, top, _, bottom = draw.textbbox((0, 0), title, font=font)
    draw.text(
        (MARGIN + 10, MARGIN + (TILE_HEIGHT - (bottom - top)) // 2 - top),
        title,
        font=font,
        fill=COLORS["ink"],
    )


def _draw_footer(img: Image.Image, deck: ResolvedDeck) -> None:
    color = CLASS_COLORS.get(deck.hero_class or "", NEUTRAL_COLOR)
    draw = ImageDraw.Draw(img)
    y = img.height - 3 * MARGIN
    draw.rectangle((MARGIN, y, img.width - MARGIN - 1, y + 2 * MARGIN - 1), fill=color)


def _render_raster(
    deck: ResolvedDeck,
    layout: Layout,
    assets: AssetStore,
    render_workers: int,
    fetch_workers: int,
) -> RenderedDeck:
    placed, cols, rows = _placements(deck, layout)
    size = _canvas_size(layout, cols, rows)

    # Phase 1: artwork, one fetch per distinct card
    distinct: dict[int, Card] = {}
    for slot, _, _ in placed:
        if isinstance(slot, _TileSlot):
            distinct.setdefault(slot.card.id, slot.card)
    artwork, warnings = _fetch_artwork(list(distinct.values()), assets, fetch_workers)

    # Phase 2: tiles, joined before assembly
    def draw_slot(slot: _Slot) -> Image.Image:
        if isinstance(slot, _HeadingSlot):
            return render_heading(slot.text)
        return render_tile(slot.card, slot.count, artwork.get(slot.card.id))

    with ThreadPoolExecutor(max_workers=render_workers) as pool:
        tiles = list(pool.map(draw_slot, [slot for slot, _, _ in placed]))

    # Phase 3: assembly
    img = Image.new("RGB", size, COLORS["background"])
    if placed:
        body = Image.new("RGB", _body_size(cols, rows), COLORS["background"])
        for tile, (_, col, row) in zip(tiles, placed):
            body.paste(tile, (col * COLUMN_WIDTH + MARGIN, row * ROW_HEIGHT))
        if layout is Layout.SINGLE:
            body = body.transpose(Image.Transpose.ROTATE_90)
        img.paste(body, (0, HEADER_HEIGHT))

    _draw_header(img, deck)
    _draw_footer(img, deck)

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return RenderedDeck(
        data=buf.getvalue(),
        media_type=PNG_MEDIA_TYPE,
        layout=layout,
        size=img.size,
        warnings=warnings,
    )


def render_text(deck: ResolvedDeck) -> str:
    """Deck list as text, in the same order as the raster layouts."""
    lines = [
        f"### {deck.display_title}",
        f"{deck.format_name} | {deck.card_count()} cards",
        "",
    ]

    def entry_line(entry: DeckEntry) -> str:
        return f"{entry.card.id:>7} {entry.count}x {entry.card.name}"

    lines.extend(entry_line(entry) for entry in deck.ordered_cards())

    for owner, entries in deck.sideboard_groups():
        lines.append("")
        lines.append(f"Sideboard of {owner.name}:")
        lines.extend(entry_line(entry) for entry in entries)

    if deck.unresolved_ids:
        lines.append("")
        lines.append("Unknown card ids: " + ", ".join(str(i) for i in sorted(deck.unresolved_ids)))

    return "\n".join(lines) + "\n"


def render_deck(
    deck: ResolvedDeck,
    layout: Layout,
    assets: AssetStore | None = None,
    render_workers: int | None = None,
    fetch_workers: int | None = None,
) -> RenderedDeck:
    """
    Render a resolved deck.

    The same deck, layout and artwork always produce the same bytes.

    Args:
        deck: Deck to render
        layout: Layout to use
        assets: Artwork source (not needed for TEXT)
        render_workers: Tile drawing threads. Defaults to settings.render_workers
        fetch_workers: Concurrent artwork fetches. Defaults to settings.asset_fetch_concurrency

    Returns:
        RenderedDeck with PNG or UTF-8 text bytes

    Raises:
        ValueError: If a raster layout is requested without an asset store
    """
    if layout is Layout.TEXT:
        return RenderedDeck(
            data=render_text(deck).encode("utf-8"),
            media_type=TEXT_MEDIA_TYPE,
            layout=layout,
        )

    if assets is None:
        raise ValueError(f"{layout.value} layout needs an asset store")

    return _render_raster(
        deck,
        layout,
        assets,
        render_workers=render_workers or settings.render_workers,
        fetch_workers=fetch_workers or settings.asset_fetch_concurrency,
    )
