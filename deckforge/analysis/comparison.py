"""
Deck comparison.

Multiset difference of two resolved decks by card id, computed with a
sort-merge over both id-ordered card lists.
"""

from deckforge.models.card import Card
from deckforge.models.deck import ComparisonResult, DeckEntry, ResolvedDeck, SharedCard


def _by_id(deck: ResolvedDeck) -> list[tuple[int, Card, int]]:
    """Main deck as (id, card, count), merged and ordered by id."""
    merged: dict[int, tuple[Card, int]] = {}
    for entry in deck.cards:
        card, count = merged.get(entry.card.id, (entry.card, 0))
        merged[entry.card.id] = (card, count + entry.count)
    return sorted((card_id, card, count) for card_id, (card, count) in merged.items())


def compare_decks(a: ResolvedDeck, b: ResolvedDeck) -> ComparisonResult:
    """
    Compare the main decks of two resolved decks.

    Cards in both decks go to shared with both counts. Copies one deck has
    beyond the other go to that deck's only_in list. Every list is ordered
    by mana cost, then name, then id. Neither deck is modified.

    Args:
        a: First deck
        b: Second deck

    Returns:
        ComparisonResult
    """
    left = _by_id(a)
    right = _by_id(b)

    only_in_a: list[DeckEntry] = []
    only_in_b: list[DeckEntry] = []
    shared: list[SharedCard] = []

    i = j = 0
    while i < len(left) and j < len(right):
        id_a, card_a, count_a = left[i]
        id_b, card_b, count_b = right[j]

        if id_a < id_b:
            only_in_a.append(DeckEntry(card=card_a, count=count_a))
            i += 1
        elif id_b < id_a:
            only_in_b.append(DeckEntry(card=card_b, count=count_b))
            j += 1
        else:
            shared.append(SharedCard(card=card_a, count_a=count_a, count_b=count_b))
            if count_a > count_b:
                only_in_a.append(DeckEntry(card=card_a, count=count_a - count_b))
            elif count_b > count_a:
                only_in_b.append(DeckEntry(card=card_b, count=count_b - count_a))
            i += 1
            j += 1

    only_in_a.extend(DeckEntry(card=card, count=count) for _, card, count in left[i:])
    only_in_b.extend(DeckEntry(card=card, count=count) for _, card, count in right[j:])

    return ComparisonResult(
        only_in_a=sorted(only_in_a, key=lambda entry: entry.card.sort_key()),
        only_in_b=sorted(only_in_b, key=lambda entry: entry.card.sort_key()),
        shared=sorted(shared, key=lambda s: s.card.sort_key()),
    )


def format_comparison(
    result: ComparisonResult,
    label_a: str = "Deck A",
    label_b: str = "Deck B",
) -> str:
    """
    Render a comparison as text.

    Shared cards first (count shown when above one), then the cards only
    deck A has marked with "+", then the cards only deck B has marked
    with "-".
    """
    lines: list[str] = []

    for s in result.shared:
        count = min(s.count_a, s.count_b)
        prefix = f"{count}x" if count > 1 else ""
        lines.append(f"{prefix:>4} {s.card.name}")

    lines.append("")
    lines.append(label_a)
    for entry in result.only_in_a:
        prefix = f"{entry.count}x" if entry.count > 1 else ""
        lines.append(f"+{prefix:>3} {entry.card.name}")

    lines.append("")
    lines.append(label_b)
    for entry in result.only_in_b:
        prefix = f"{entry.count}x" if entry.count > 1 else ""
        lines.append(f"-{prefix:>3} {entry.card.name}")

    return "\n".join(lines)
