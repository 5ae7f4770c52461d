from collections import Counter
from dataclasses import dataclass, field
from enum import Enum, IntEnum

from deckforge.models.card import Card


class GameFormat(IntEnum):
    """Known values of the deck code format tag."""

    WILD = 1
    STANDARD = 2
    CLASSIC = 3
    TWIST = 4

    @classmethod
    def label(cls, format_tag: int) -> str:
        """Display name for a format tag, including unknown ones."""
        try:
            return cls(format_tag).name.title()
        except ValueError:
            return f"Format {format_tag}"

    @classmethod
    def parse(cls, value: str) -> int:
        """
        Format tag from a name ("twist") or a raw number ("5").

        Raises:
            ValueError: If the value is neither
        """
        value = value.strip()
        if value.isdigit():
            return int(value)
        try:
            return int(cls[value.upper()])
        except KeyError:
            raise ValueError(f"Unknown format: {value}") from None


class Layout(str, Enum):
    """Deck image layouts."""

    GROUPS = "groups"
    SINGLE = "single"
    WIDE = "wide"
    TEXT = "text"


@dataclass
class StructuralDeck:
    """
    A deck as carried by a deck code: ids and counts only.

    Attributes:
        format_tag: Game mode tag from the code (see GameFormat), kept opaque
        hero_ids: Hero card ids, in code order
        cards: (card_id, count) pairs, count >= 1
        sideboard: (owner_card_id, sideboard_card_id) pairs; a pair repeats
            once per copy
        duplicates_merged: True if the same id appeared in more than one
            bucket and the counts were summed
    """

    format_tag: int
    hero_ids: list[int] = field(default_factory=list)
    cards: list[tuple[int, int]] = field(default_factory=list)
    sideboard: list[tuple[int, int]] = field(default_factory=list)
    duplicates_merged: bool = False

    def card_count(self) -> int:
        """Total cards in the main deck."""
        return sum(count for _, count in self.cards)

    def card_counts(self) -> Counter[int]:
        """Main deck as an id -> count multiset."""
        counts: Counter[int] = Counter()
        for card_id, count in self.cards:
            counts[card_id] += count
        return counts

    def normalized(self) -> "StructuralDeck":
        """
        Copy with duplicate card ids merged.

        Order of first appearance is kept. Sets duplicates_merged when
        anything was merged.
        """
        merged: dict[int, int] = {}
        for card_id, count in self.cards:
            merged[card_id] = merged.get(card_id, 0) + count

        return StructuralDeck(
            format_tag=self.format_tag,
            hero_ids=list(self.hero_ids),
            cards=list(merged.items()),
            sideboard=list(self.sideboard),
            duplicates_merged=self.duplicates_merged or len(merged) != len(self.cards),
        )


@dataclass(frozen=True, slots=True)
class DeckEntry:
    """A card with its count in a deck."""

    card: Card
    count: int


@dataclass(frozen=True, slots=True)
class SideboardEntry:
    """A sideboard card attached to an owner card in the main deck."""

    owner: Card
    card: Card
    count: int


@dataclass
class ResolvedDeck:
    """
    A structural deck whose ids were looked up in the card database.

    Unknown ids are represented by placeholder cards and listed in
    unresolved_ids, so a partially known deck is never mistaken for a
    fully known one.
    """

    format_tag: int
    heroes: list[Card]
    cards: list[DeckEntry]
    sideboard: list[SideboardEntry] = field(default_factory=list)
    title: str | None = None
    unresolved_ids: set[int] = field(default_factory=set)
    duplicates_merged: bool = False

    @property
    def format_name(self) -> str:
        return GameFormat.label(self.format_tag)

    @property
    def hero_class(self) -> str | None:
        """First class tag of the first hero, if any."""
        for hero in self.heroes:
            if hero.class_tags:
                return hero.class_tags[0]
        return None

    @property
    def display_title(self) -> str:
        """Title for headers: explicit title, else class and format."""
        if self.title:
            return self.title
        hero_class = self.hero_class
        if hero_class:
            return f"{hero_class.title()} - {self.format_name}"
        return f"{self.format_name} Deck"

    @property
    def all_resolved(self) -> bool:
        return not self.unresolved_ids

    def card_count(self) -> int:
        """Total cards in the main deck."""
        return sum(entry.count for entry in self.cards)

    def ordered_cards(self) -> list[DeckEntry]:
        """Main deck entries by mana cost, then name, then id."""
        return sorted(self.cards, key=lambda entry: entry.card.sort_key())

    def sideboard_groups(self) -> list[tuple[Card, list[DeckEntry]]]:
        """
        Sideboard entries grouped by owner.

        Owners follow main deck order; entries within a group follow
        the main deck ordering rules.
        """
        groups: dict[int, tuple[Card, list[DeckEntry]]] = {}
        for sb in self.sideboard:
            owner_group = groups.setdefault(sb.owner.id, (sb.owner, []))
            owner_group[1].append(DeckEntry(card=sb.card, count=sb.count))

        owner_order = {entry.card.id: i for i, entry in enumerate(self.ordered_cards())}
        ordered = sorted(
            groups.values(),
            key=lambda group: (owner_order.get(group[0].id, len(owner_order)), group[0].id),
        )
        return [
            (owner, sorted(entries, key=lambda entry: entry.card.sort_key()))
            for owner, entries in ordered
        ]


@dataclass(frozen=True, slots=True)
class SharedCard:
    """A card present in both compared decks."""

    card: Card
    count_a: int
    count_b: int

    @property
    def delta(self) -> int:
        """Copies deck A has over deck B (negative if fewer)."""
        return self.count_a - self.count_b


@dataclass
class ComparisonResult:
    """
    Multiset difference between two decks.

    only_in_a and only_in_b hold the copies one deck has beyond the other;
    shared holds every card present in both, with both counts.
    """

    only_in_a: list[DeckEntry] = field(default_factory=list)
    only_in_b: list[DeckEntry] = field(default_factory=list)
    shared: list[SharedCard] = field(default_factory=list)

    @property
    def identical(self) -> bool:
        return not self.only_in_a and not self.only_in_b
