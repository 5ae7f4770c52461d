from deckforge.services.asset_store import AssetFetchError, AssetStore, TileArtStore
from deckforge.services.card_database import (
    CardDatabase,
    DatabaseUnavailableError,
    download_card_database,
    load_card_database,
    parse_card_record,
)
from deckforge.services.deck_resolver import (
    AmbiguousNameMatchError,
    DeckResolver,
    NameNotFoundError,
    resolve_card_name,
    resolve_deck,
)

__all__ = [
    "AmbiguousNameMatchError",
    "AssetFetchError",
    "AssetStore",
    "CardDatabase",
    "DatabaseUnavailableError",
    "DeckResolver",
    "NameNotFoundError",
    "TileArtStore",
    "download_card_database",
    "load_card_database",
    "parse_card_record",
    "resolve_card_name",
    "resolve_deck",
]
