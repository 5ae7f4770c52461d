"""
Deck Resolution Service.

Turns structural decks (ids and counts) into resolved decks (card records)
and card names into cards.

INVARIANTS:
1. Resolution never runs against a database that has not finished loading
2. Missing ids degrade to placeholder cards and are always reported
3. Duplicate ids are summed and always reported
4. Name lookup returns exactly one card or a terminal error
"""

import logging
from collections import Counter
from dataclasses import dataclass

from rapidfuzz import fuzz

from deckforge.config import settings
from deckforge.models.card import Card, placeholder_card
from deckforge.models.deck import DeckEntry, ResolvedDeck, SideboardEntry, StructuralDeck
from deckforge.models.failure import FailureKind, InvalidInputError, KnownError
from deckforge.services.card_database import CardDatabase

logger = logging.getLogger(__name__)

# Name match tiers, best first
RANK_EXACT = 0
RANK_PREFIX = 1
RANK_SUBSTRING = 2
RANK_FUZZY = 3


class NameNotFoundError(KnownError):
    """No card name matches the query."""

    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f'No card found with name "{query}".',
            suggestion="Check your spelling.",
            status_code=404,
        )


class AmbiguousNameMatchError(KnownError):
    """Several distinct cards match the query equally well."""

    def __init__(self, query: str, candidates: list[Card]) -> None:
        self.query = query
        self.candidates = candidates
        names = ", ".join(card.name for card in candidates[:10])
        if len(candidates) > 10:
            names += f" (and {len(candidates) - 10} more)"
        super().__init__(
            kind=FailureKind.AMBIGUOUS_MATCH,
            message=f'"{query}" matches more than one card.',
            detail=f"Candidates: {names}",
            suggestion="Use a more specific name.",
            status_code=409,
        )


def score(query: str, candidate_name: str, fuzzy_threshold: int | None = None) -> int | None:
    """
    Rank how well a card name matches a query.

    Lower is better: exact (case-insensitive) match, then prefix, then
    substring, then a fuzzy partial match scoring at least fuzzy_threshold.

    Returns:
        The rank, or None if the name does not match at all
    """
    if fuzzy_threshold is None:
        fuzzy_threshold = settings.fuzzy_match_threshold

    needle = query.strip().casefold()
    haystack = candidate_name.casefold()
    if not needle:
        return None

    if haystack == needle:
        return RANK_EXACT
    if haystack.startswith(needle):
        return RANK_PREFIX
    if needle in haystack:
        return RANK_SUBSTRING
    if fuzz.partial_ratio(needle, haystack) >= fuzzy_threshold:
        return RANK_FUZZY
    return None


@dataclass
class NameMatch:
    """Best-tier candidates for a name query."""

    rank: int | None
    candidates: list[Card]


class DeckResolver:
    """
    Resolves ids and names against a CardDatabase.

    The database is passed in explicitly; the resolver never loads it.
    """

    def __init__(self, card_db: CardDatabase, load_timeout: float | None = None) -> None:
        """
        Args:
            card_db: Card database (possibly still loading)
            load_timeout: Seconds to wait for the database to finish loading.
                Defaults to settings.database_load_timeout
        """
        self._card_db = card_db
        self._load_timeout = load_timeout

    def _card(self, card_id: int, unresolved: set[int]) -> Card:
        card = self._card_db.get(card_id)
        if card is None:
            unresolved.add(card_id)
            return placeholder_card(card_id)
        return card

    def resolve(self, deck: StructuralDeck, title: str | None = None) -> ResolvedDeck:
        """
        Resolve every hero, card and sideboard id.

        Args:
            deck: Structural deck, normally straight from the codec
            title: Optional display title

        Returns:
            ResolvedDeck with placeholders for unknown ids

        Raises:
            DatabaseUnavailableError: If the database is not loaded in time
        """
        self._card_db.wait_until_loaded(self._load_timeout)

        normalized = deck.normalized()
        unresolved: set[int] = set()

        heroes = [self._card(hero_id, unresolved) for hero_id in normalized.hero_ids]
        cards = [
            DeckEntry(card=self._card(card_id, unresolved), count=count)
            for card_id, count in normalized.cards
        ]
        sideboard = [
            SideboardEntry(
                owner=self._card(owner_id, unresolved),
                card=self._card(card_id, unresolved),
                count=count,
            )
            for (owner_id, card_id), count in Counter(normalized.sideboard).items()
        ]

        if unresolved:
            logger.info("Deck references %d unknown card ids", len(unresolved))
        if normalized.duplicates_merged:
            logger.info("Deck listed some card ids more than once; counts were merged")

        return ResolvedDeck(
            format_tag=normalized.format_tag,
            heroes=heroes,
            cards=cards,
            sideboard=sideboard,
            title=title,
            unresolved_ids=unresolved,
            duplicates_merged=normalized.duplicates_merged,
        )

    def match_name(self, query: str) -> NameMatch:
        """
        Collect the best-ranked collectible cards for a query.

        Reprints sharing a name collapse to the lowest id. Candidates are
        ordered by name length, then name.
        """
        self._card_db.wait_until_loaded(self._load_timeout)

        best_rank: int | None = None
        by_name: dict[str, Card] = {}

        for card in self._card_db.collectible_cards():
            rank = score(query, card.name)
            if rank is None:
                continue
            if best_rank is None or rank < best_rank:
                best_rank = rank
                by_name = {}
            if rank == best_rank:
                current = by_name.get(card.name)
                if current is None or card.id < current.id:
                    by_name[card.name] = card

        candidates = sorted(by_name.values(), key=lambda c: (len(c.name), c.name))
        return NameMatch(rank=best_rank, candidates=candidates)

    def resolve_by_name(self, query: str) -> Card:
        """
        Find the single card a name refers to.

        Raises:
            NameNotFoundError: Nothing matches
            AmbiguousNameMatchError: More than one distinct card matches
            DatabaseUnavailableError: If the database is not loaded in time
        """
        match = self.match_name(query)
        if not match.candidates:
            raise NameNotFoundError(query)
        if len(match.candidates) > 1:
            raise AmbiguousNameMatchError(query, match.candidates)
        return match.candidates[0]

    def add_sideboard_by_name(
        self,
        deck: StructuralDeck,
        owner_id: int,
        names: list[str],
    ) -> StructuralDeck:
        """
        Attach named cards to an owner card's sideboard.

        For decks whose code lacks a sideboard the owner needs (e.g. a
        band manager picking its band).

        Raises:
            InvalidInputError: Owner not in deck, or it already has a sideboard
            NameNotFoundError, AmbiguousNameMatchError: From name lookup
        """
        if owner_id not in deck.card_counts():
            raise InvalidInputError(
                "The sideboard owner is not in the deck.", detail=f"card id {owner_id}"
            )
        if any(existing_owner == owner_id for existing_owner, _ in deck.sideboard):
            raise InvalidInputError(
                "The deck already has a sideboard for that card.", detail=f"card id {owner_id}"
            )

        added = [(owner_id, self.resolve_by_name(name).id) for name in names]

        return StructuralDeck(
            format_tag=deck.format_tag,
            hero_ids=list(deck.hero_ids),
            cards=list(deck.cards),
            sideboard=list(deck.sideboard) + added,
            duplicates_merged=deck.duplicates_merged,
        )


# =============================================================================
# PUBLIC API
# =============================================================================


def resolve_deck(deck: StructuralDeck, card_db: CardDatabase, title: str | None = None) -> ResolvedDeck:
    """Resolve a structural deck. See DeckResolver.resolve."""
    return DeckResolver(card_db).resolve(deck, title=title)


def resolve_card_name(query: str, card_db: CardDatabase) -> Card:
    """Resolve a card name. See DeckResolver.resolve_by_name."""
    return DeckResolver(card_db).resolve_by_name(query)
