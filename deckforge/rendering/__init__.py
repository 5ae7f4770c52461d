from deckforge.rendering.deck_image import (
    AssetFetchDegraded,
    RenderedDeck,
    canvas_size,
    cost_bucket_labels,
    render_deck,
    render_text,
)
from deckforge.rendering.tiles import count_label, render_tile, wrap_text

__all__ = [
    "AssetFetchDegraded",
    "RenderedDeck",
    "canvas_size",
    "cost_bucket_labels",
    "count_label",
    "render_deck",
    "render_text",
    "render_tile",
    "wrap_text",
]
