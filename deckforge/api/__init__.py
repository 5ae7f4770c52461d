from deckforge.api.cards import router as cards_router
from deckforge.api.decks import router as decks_router
from deckforge.api.health import router as health_router

__all__ = [
    "cards_router",
    "decks_router",
    "health_router",
]
