"""
Deck API endpoints.

Decode, encode, compare and render deck codes, and attach sideboards by
card name.

Handlers that resolve or render are plain functions: they may block on
the card database or on artwork downloads, so FastAPI runs them in its
thread pool.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from deckforge.analysis.comparison import compare_decks, format_comparison
from deckforge.api.dependencies import get_asset_store, get_card_database, http_error
from deckforge.models.card import Card
from deckforge.models.deck import DeckEntry, Layout, ResolvedDeck, StructuralDeck
from deckforge.models.failure import KnownError
from deckforge.parsers.deck_code import decode, encode
from deckforge.rendering.deck_image import render_deck
from deckforge.services.asset_store import AssetStore
from deckforge.services.card_database import CardDatabase
from deckforge.services.deck_resolver import DeckResolver

router = APIRouter(prefix="/decks", tags=["decks"])

WARNINGS_HEADER = "X-Deckforge-Warnings"

MAX_ID = 0xFFFFFFFF


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class CardResponse(BaseModel):
    """A card as returned by the API."""

    id: int
    name: str
    mana_cost: int
    card_type: str
    rarity: str
    class_tags: list[str] = Field(default_factory=list)
    collectible: bool
    artwork_ref: str | None = None

    @classmethod
    def from_card(cls, card: Card) -> "CardResponse":
        return cls(
            id=card.id,
            name=card.name,
            mana_cost=card.mana_cost,
            card_type=card.card_type.value,
            rarity=card.rarity.value,
            class_tags=list(card.class_tags),
            collectible=card.collectible,
            artwork_ref=card.artwork_ref,
        )


class DeckEntryResponse(BaseModel):
    card: CardResponse
    count: int

    @classmethod
    def from_entry(cls, entry: DeckEntry) -> "DeckEntryResponse":
        return cls(card=CardResponse.from_card(entry.card), count=entry.count)


class SideboardResponse(BaseModel):
    """Sideboard cards attached to one owner card."""

    owner: CardResponse
    cards: list[DeckEntryResponse]


class ResolvedDeckResponse(BaseModel):
    """A decoded and resolved deck."""

    title: str
    format_tag: int
    format_name: str
    heroes: list[CardResponse]
    cards: list[DeckEntryResponse]
    sideboards: list[SideboardResponse] = Field(default_factory=list)
    card_count: int
    unresolved_ids: list[int] = Field(default_factory=list)
    duplicates_merged: bool = False

    @classmethod
    def from_deck(cls, deck: ResolvedDeck) -> "ResolvedDeckResponse":
        return cls(
            title=deck.display_title,
            format_tag=deck.format_tag,
            format_name=deck.format_name,
            heroes=[CardResponse.from_card(hero) for hero in deck.heroes],
            cards=[DeckEntryResponse.from_entry(entry) for entry in deck.ordered_cards()],
            sideboards=[
                SideboardResponse(
                    owner=CardResponse.from_card(owner),
                    cards=[DeckEntryResponse.from_entry(entry) for entry in entries],
                )
                for owner, entries in deck.sideboard_groups()
            ],
            card_count=deck.card_count(),
            unresolved_ids=sorted(deck.unresolved_ids),
            duplicates_merged=deck.duplicates_merged,
        )


class SharedCardResponse(BaseModel):
    card: CardResponse
    count_a: int
    count_b: int


class CompareResponse(BaseModel):
    """Multiset difference of two decks' main cards."""

    only_in_a: list[DeckEntryResponse]
    only_in_b: list[DeckEntryResponse]
    shared: list[SharedCardResponse]
    identical: bool
    text: str


class CodeResponse(BaseModel):
    code: str


# =============================================================================
# REQUEST MODELS
# =============================================================================


class DecodeRequest(BaseModel):
    code: str = Field(..., min_length=1)
    title: str | None = None
    # Replaces the format carried by the code, e.g. to show a Wild list as Twist
    format_tag: int | None = Field(default=None, ge=0, le=MAX_ID)


class CardCount(BaseModel):
    id: int = Field(..., ge=0, le=MAX_ID)
    count: int = Field(..., ge=1)


class SideboardCard(BaseModel):
    owner_id: int = Field(..., ge=0, le=MAX_ID)
    card_id: int = Field(..., ge=0, le=MAX_ID)
    count: int = Field(default=1, ge=1)


class EncodeRequest(BaseModel):
    """A structural deck to encode."""

    format_tag: int = Field(default=2, ge=0, le=MAX_ID)
    hero_ids: list[Annotated[int, Field(ge=0, le=MAX_ID)]] = Field(default_factory=list)
    cards: list[CardCount] = Field(default_factory=list)
    sideboard: list[SideboardCard] = Field(default_factory=list)

    def to_deck(self) -> StructuralDeck:
        pairs: list[tuple[int, int]] = []
        for sb in self.sideboard:
            pairs.extend([(sb.owner_id, sb.card_id)] * sb.count)
        return StructuralDeck(
            format_tag=self.format_tag,
            hero_ids=list(self.hero_ids),
            cards=[(c.id, c.count) for c in self.cards],
            sideboard=pairs,
        )


class CompareRequest(BaseModel):
    code_a: str = Field(..., min_length=1)
    code_b: str = Field(..., min_length=1)
    label_a: str = "Deck A"
    label_b: str = "Deck B"


class RenderRequest(BaseModel):
    code: str = Field(..., min_length=1)
    title: str | None = None
    layout: Layout = Layout.GROUPS
    format_tag: int | None = Field(default=None, ge=0, le=MAX_ID)


class SideboardRequest(BaseModel):
    """Cards to attach, by name, to one owner card's sideboard."""

    code: str = Field(..., min_length=1)
    owner_id: int = Field(..., ge=0, le=MAX_ID)
    names: list[str] = Field(..., min_length=1)


# =============================================================================
# ENDPOINTS
# =============================================================================


def _resolve(
    code: str,
    title: str | None,
    card_db: CardDatabase,
    format_tag: int | None = None,
) -> ResolvedDeck:
    try:
        deck = decode(code)
        if format_tag is not None:
            deck.format_tag = format_tag
        return DeckResolver(card_db).resolve(deck, title=title)
    except KnownError as e:
        raise http_error(e) from e


@router.post("/decode", response_model=ResolvedDeckResponse)
def decode_deck(
    request: DecodeRequest,
    card_db: Annotated[CardDatabase, Depends(get_card_database)],
) -> ResolvedDeckResponse:
    """
    Decode a deck code and resolve its cards.

    Unknown card ids come back as "Unknown Card" entries and are listed
    in unresolved_ids. A format_tag in the request replaces the code's own.
    """
    return ResolvedDeckResponse.from_deck(
        _resolve(request.code, request.title, card_db, request.format_tag)
    )


@router.post("/encode", response_model=CodeResponse)
async def encode_deck(request: EncodeRequest) -> CodeResponse:
    """Encode a structural deck. Equal decks always get the same code."""
    try:
        return CodeResponse(code=encode(request.to_deck()))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


@router.post("/compare", response_model=CompareResponse)
def compare(
    request: CompareRequest,
    card_db: Annotated[CardDatabase, Depends(get_card_database)],
) -> CompareResponse:
    """Compare the main decks of two deck codes."""
    deck_a = _resolve(request.code_a, None, card_db)
    deck_b = _resolve(request.code_b, None, card_db)
    result = compare_decks(deck_a, deck_b)

    return CompareResponse(
        only_in_a=[DeckEntryResponse.from_entry(e) for e in result.only_in_a],
        only_in_b=[DeckEntryResponse.from_entry(e) for e in result.only_in_b],
        shared=[
            SharedCardResponse(card=CardResponse.from_card(s.card), count_a=s.count_a, count_b=s.count_b)
            for s in result.shared
        ],
        identical=result.identical,
        text=format_comparison(result, request.label_a, request.label_b),
    )


@router.post(
    "/render",
    response_class=Response,
    responses={200: {"content": {"image/png": {}, "text/plain": {}}}},
)
def render(
    request: RenderRequest,
    card_db: Annotated[CardDatabase, Depends(get_card_database)],
    assets: Annotated[AssetStore, Depends(get_asset_store)],
) -> Response:
    """
    Render a deck code as a PNG image, or as text for the text layout.

    Cards whose artwork could not be fetched are drawn as placeholder
    tiles; their ids are listed in the X-Deckforge-Warnings header.
    """
    deck = _resolve(request.code, request.title, card_db, request.format_tag)
    rendered = render_deck(deck, request.layout, assets)

    headers = {}
    if rendered.warnings:
        headers[WARNINGS_HEADER] = ",".join(str(w.card_id) for w in rendered.warnings)

    return Response(content=rendered.data, media_type=rendered.media_type, headers=headers)


@router.post("/sideboard", response_model=CodeResponse)
def add_sideboard(
    request: SideboardRequest,
    card_db: Annotated[CardDatabase, Depends(get_card_database)],
) -> CodeResponse:
    """
    Attach cards to an owner card's sideboard by name.

    Returns the new deck code. Fails if the owner is not in the deck or
    already has a sideboard, or if a name is unknown or ambiguous.
    """
    try:
        deck = DeckResolver(card_db).add_sideboard_by_name(
            decode(request.code), request.owner_id, request.names
        )
    except KnownError as e:
        raise http_error(e) from e
    return CodeResponse(code=encode(deck))
