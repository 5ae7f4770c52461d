"""
Card lookup endpoint.

Finds a single collectible card by (partial or misspelled) name.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from deckforge.api.decks import CardResponse
from deckforge.api.dependencies import get_card_database, http_error
from deckforge.models.failure import KnownError
from deckforge.services.card_database import CardDatabase
from deckforge.services.deck_resolver import AmbiguousNameMatchError, DeckResolver

router = APIRouter(prefix="/cards", tags=["cards"])


@router.get("/search", response_model=CardResponse)
def search_card(
    name: Annotated[str, Query(min_length=1)],
    card_db: Annotated[CardDatabase, Depends(get_card_database)],
) -> CardResponse:
    """
    Look up one card by name.

    Returns 404 if nothing matches, or 409 with the candidate names if
    several different cards match equally well.
    """
    try:
        card = DeckResolver(card_db).resolve_by_name(name)
    except AmbiguousNameMatchError as e:
        raise http_error(e, candidates=[c.name for c in e.candidates]) from e
    except KnownError as e:
        raise http_error(e) from e
    return CardResponse.from_card(card)
