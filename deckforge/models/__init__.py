from deckforge.models.card import (
    UNKNOWN_CARD_NAME,
    Card,
    CardType,
    Rarity,
    placeholder_card,
)
from deckforge.models.deck import (
    ComparisonResult,
    DeckEntry,
    GameFormat,
    Layout,
    ResolvedDeck,
    SharedCard,
    SideboardEntry,
    StructuralDeck,
)
from deckforge.models.failure import (
    FailureDetail,
    FailureKind,
    InvalidInputError,
    KnownError,
    OutcomeType,
)

__all__ = [
    "Card",
    "CardType",
    "ComparisonResult",
    "DeckEntry",
    "FailureDetail",
    "FailureKind",
    "GameFormat",
    "InvalidInputError",
    "KnownError",
    "Layout",
    "OutcomeType",
    "Rarity",
    "ResolvedDeck",
    "SharedCard",
    "SideboardEntry",
    "StructuralDeck",
    "UNKNOWN_CARD_NAME",
    "placeholder_card",
]
