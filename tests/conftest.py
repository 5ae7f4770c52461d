import io

import pytest
from PIL import Image

from deckforge.models.card import Card, CardType, Rarity
from deckforge.services.asset_store import AssetFetchError
from deckforge.services.card_database import CardDatabase

# Real standard deck: one hero, 40 cards, E.T.C. (90749) with three band members
KNOWN_CODE = (
    "AAECAa0GCOWwBKi2BJfvBO+RBeKkBf3EBc/GBcbHBRCi6AOEnwShtgSktgSWtwT52wS43AS63ASGgwXgpAW7"
    "xAW7xwX7+AW4ngbPngbRngYAAQO42QT9xAX/4QT9xAXFpQX9xAUAAA=="
)
KNOWN_HERO = 813
ETC_ID = 90749
KNOWN_BAND = [76984, 78079, 86725]

RAGNAROS = Card(
    id=672,
    name="Ragnaros the Firelord",
    mana_cost=8,
    card_type=CardType.MINION,
    rarity=Rarity.LEGENDARY,
    artwork_ref="EX1_298",
)
LIGHTLORD = Card(
    id=2000,
    name="Ragnaros, Lightlord",
    mana_cost=8,
    card_type=CardType.MINION,
    rarity=Rarity.LEGENDARY,
    class_tags=("PALADIN",),
    artwork_ref="OG_229",
)
FIREBALL = Card(
    id=315,
    name="Fireball",
    mana_cost=4,
    card_type=CardType.SPELL,
    rarity=Rarity.FREE,
    class_tags=("MAGE",),
    artwork_ref="CS2_029",
)
FIREBALL_REPRINT = Card(
    id=69623,
    name="Fireball",
    mana_cost=4,
    card_type=CardType.SPELL,
    rarity=Rarity.COMMON,
    class_tags=("MAGE",),
    artwork_ref="CORE_CS2_029",
)
FROSTBOLT = Card(
    id=662,
    name="Frostbolt",
    mana_cost=2,
    card_type=CardType.SPELL,
    rarity=Rarity.FREE,
    class_tags=("MAGE",),
    artwork_ref="CS2_024",
)
ARCANE_INTELLECT = Card(
    id=555,
    name="Arcane Intellect",
    mana_cost=3,
    card_type=CardType.SPELL,
    rarity=Rarity.FREE,
    class_tags=("MAGE",),
    artwork_ref="CS2_023",
)
ETC = Card(
    id=ETC_ID,
    name="E.T.C., Band Manager",
    mana_cost=3,
    card_type=CardType.MINION,
    rarity=Rarity.LEGENDARY,
    artwork_ref="ETC_080",
)
JAINA = Card(
    id=KNOWN_HERO,
    name="Jaina Proudmoore",
    card_type=CardType.HERO,
    rarity=Rarity.FREE,
    class_tags=("MAGE",),
    artwork_ref="HERO_08",
)
FLAME_TOKEN = Card(
    id=9001,
    name="Flame of Ragnaros",
    mana_cost=1,
    card_type=CardType.SPELL,
    artwork_ref="TOKEN_01",
    collectible=False,
)

SAMPLE_CARDS = [
    RAGNAROS,
    FIREBALL,
    FIREBALL_REPRINT,
    FROSTBOLT,
    ARCANE_INTELLECT,
    ETC,
    JAINA,
    FLAME_TOKEN,
]

ART_COLOR = (200, 30, 30)


def artwork_png(color: tuple[int, int, int] = ART_COLOR) -> bytes:
    """Tile-sized solid PNG."""
    buf = io.BytesIO()
    Image.new("RGB", (243, 64), color).save(buf, format="PNG")
    return buf.getvalue()


class FakeAssetStore:
    """In-memory artwork store that fails for chosen card ids."""

    def __init__(self, failing: set[int] | None = None) -> None:
        self.failing = failing or set()
        self.fetched: list[int] = []
        self._png = artwork_png()

    def fetch(self, card: Card) -> bytes:
        self.fetched.append(card.id)
        if card.id in self.failing:
            raise AssetFetchError(card, "HTTP 404")
        return self._png


@pytest.fixture
def card_db() -> CardDatabase:
    """Loaded database with one Ragnaros, a reprinted Fireball and E.T.C."""
    return CardDatabase.from_cards(SAMPLE_CARDS)


@pytest.fixture
def ambiguous_db() -> CardDatabase:
    """Loaded database with two different Ragnaros cards."""
    return CardDatabase.from_cards([*SAMPLE_CARDS, LIGHTLORD])


@pytest.fixture
def asset_store() -> FakeAssetStore:
    return FakeAssetStore()


@pytest.fixture
def sample_records() -> list[dict]:
    """HearthstoneJSON records."""
    return [
        {
            "id": "EX1_298",
            "dbfId": 672,
            "name": "Ragnaros the Firelord",
            "cost": 8,
            "type": "MINION",
            "rarity": "LEGENDARY",
            "cardClass": "NEUTRAL",
            "collectible": True,
        },
        {
            "id": "CS2_029",
            "dbfId": 315,
            "name": "Fireball",
            "cost": 4,
            "type": "SPELL",
            "rarity": "FREE",
            "cardClass": "MAGE",
            "collectible": True,
        },
        {
            "id": "TB_MULTI_01",
            "dbfId": 70001,
            "name": "Dual Class Spell",
            "cost": 1,
            "type": "SPELL",
            "rarity": "RARE",
            "cardClass": "MAGE",
            "classes": ["MAGE", "ROGUE"],
            "collectible": True,
        },
        {
            "id": "GAME_005",
            "dbfId": 1746,
            "name": "The Coin",
            "cost": 0,
            "type": "SPELL",
        },
        {"id": "NO_DBF", "name": "Broken Record"},
    ]
