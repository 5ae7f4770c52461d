from dataclasses import dataclass, field
from enum import Enum


class CardType(str, Enum):
    HERO = "HERO"
    MINION = "MINION"
    SPELL = "SPELL"
    WEAPON = "WEAPON"
    LOCATION = "LOCATION"
    HERO_POWER = "HERO_POWER"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: str | None) -> "CardType":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


class Rarity(str, Enum):
    """Card rarity. Colors follow the usual item-quality palette."""

    FREE = "FREE"
    COMMON = "COMMON"
    RARE = "RARE"
    EPIC = "EPIC"
    LEGENDARY = "LEGENDARY"
    NONCOLLECTIBLE = "NONCOLLECTIBLE"

    @classmethod
    def parse(cls, value: str | None) -> "Rarity":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.NONCOLLECTIBLE

    @property
    def color(self) -> tuple[int, int, int]:
        return _RARITY_COLORS[self]


_RARITY_COLORS: dict[Rarity, tuple[int, int, int]] = {
    Rarity.FREE: (157, 157, 157),
    Rarity.COMMON: (157, 157, 157),
    Rarity.RARE: (0, 112, 221),
    Rarity.EPIC: (163, 53, 238),
    Rarity.LEGENDARY: (255, 128, 0),
    Rarity.NONCOLLECTIBLE: (0, 204, 255),
}

# Class band colors, keyed by HearthstoneJSON class tag
CLASS_COLORS: dict[str, tuple[int, int, int]] = {
    "DEATHKNIGHT": (108, 105, 154),
    "DEMONHUNTER": (37, 111, 61),
    "DRUID": (255, 127, 14),
    "HUNTER": (44, 160, 44),
    "MAGE": (23, 190, 207),
    "PALADIN": (240, 189, 39),
    "PRIEST": (200, 200, 200),
    "ROGUE": (127, 127, 127),
    "SHAMAN": (43, 125, 180),
    "WARLOCK": (162, 112, 153),
    "WARRIOR": (200, 21, 24),
}
NEUTRAL_COLOR = (169, 169, 169)

UNKNOWN_CARD_NAME = "Unknown Card"


@dataclass(frozen=True, slots=True)
class Card:
    """
    A card definition from the card database.

    Cards are owned by the CardDatabase and shared read-only by every deck
    that references them.

    Attributes:
        id: Numeric database id (the id used inside deck codes)
        name: Card name in the loaded locale
        mana_cost: Mana cost (0 if the card has none)
        card_type: Card type
        rarity: Card rarity
        class_tags: Class tags (e.g. "MAGE"); empty for neutral cards
        artwork_ref: String card code used to locate artwork (e.g. "EX1_298")
        collectible: Whether the card can be put in a deck by players
    """

    id: int
    name: str
    mana_cost: int = 0
    card_type: CardType = CardType.UNKNOWN
    rarity: Rarity = Rarity.NONCOLLECTIBLE
    class_tags: tuple[str, ...] = field(default_factory=tuple)
    artwork_ref: str | None = None
    collectible: bool = True

    @property
    def is_placeholder(self) -> bool:
        """True for stand-ins created for ids the database does not know."""
        return self.artwork_ref is None and self.name == UNKNOWN_CARD_NAME

    @property
    def is_neutral(self) -> bool:
        return not self.class_tags or self.class_tags == ("NEUTRAL",)

    def class_colors(self) -> list[tuple[int, int, int]]:
        """Band colors for this card's classes, neutral gray if none apply."""
        colors = [CLASS_COLORS[tag] for tag in self.class_tags if tag in CLASS_COLORS]
        return colors or [NEUTRAL_COLOR]

    def sort_key(self) -> tuple[int, str, int]:
        """Deck list order: mana cost, then name, then id."""
        return (self.mana_cost, self.name, self.id)


def placeholder_card(card_id: int) -> Card:
    """Stand-in for an id missing from the card database."""
    return Card(id=card_id, name=UNKNOWN_CARD_NAME)
