from deckforge.analysis.comparison import compare_decks, format_comparison

__all__ = [
    "compare_decks",
    "format_comparison",
]
