"""
Deck Code Codec.

Decodes and encodes the compact deck code format shared by the game client
and third-party deck tools.

=============================================================================
WIRE FORMAT
=============================================================================

    base64(
        0x00                      reserved byte
        varint version            always 1
        varint format             game mode tag
        varint n, n * varint      hero ids
        varint n, n * varint      card ids with one copy
        varint n, n * varint      card ids with two copies
        varint n, n * (id, count) any other count
        [trailing section]
    )

The optional trailing section starts with a marker byte. Marker 1 is the
sideboard: three buckets shaped like the card buckets, except that each
entry also carries the owner card id after the sideboard card id (and after
the count in the last bucket). Marker 0 means no sideboard.

All integers are little-endian base-128 varints of at most 32 bits.
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections import Counter
from collections.abc import Callable, Iterable

from deckforge.models.deck import StructuralDeck
from deckforge.models.failure import FailureKind, KnownError

logger = logging.getLogger(__name__)

RESERVED_BYTE = 0x00
DECK_CODE_VERSION = 1

SECTION_NONE = 0
SECTION_SIDEBOARD = 1

# Largest hero or card bucket a code may declare. Far above any real deck;
# keeps allocation bounded on hostile input.
MAX_BUCKET_LENGTH = 1000

MAX_VARINT_BYTES = 5
MAX_U32 = 0xFFFFFFFF


# =============================================================================
# ERRORS
# =============================================================================


class DeckCodeError(KnownError):
    """Base class for deck codes that cannot be decoded."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            suggestion="Copy the deck code again from the game client.",
            status_code=400,
        )


class FormatError(DeckCodeError):
    """The input is not base64, or its structure is not a deck code."""


class UnsupportedVersionError(DeckCodeError):
    """The header names a deck code version this codec does not know."""

    def __init__(self, version: int, reserved: int = RESERVED_BYTE) -> None:
        self.version = version
        self.reserved = reserved
        super().__init__(
            "Unsupported deck code version.",
            detail=f"reserved byte {reserved:#04x}, version {version}",
        )


class InvalidVarintError(DeckCodeError):
    """A varint is longer than 5 bytes or does not fit in 32 bits."""

    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__("Deck code contains an invalid number.", detail=f"offset {offset}")


class TruncatedDataError(DeckCodeError):
    """The code ends in the middle of a field."""

    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__("Deck code is incomplete.", detail=f"unexpected end at offset {offset}")


class InvalidCardCountError(DeckCodeError):
    """A bucket length is absurd, or a card count is zero."""

    def __init__(self, what: str, value: int) -> None:
        self.what = what
        self.value = value
        super().__init__("Deck code contains an invalid card count.", detail=f"{what}: {value}")


# =============================================================================
# VARINTS
# =============================================================================


class _Reader:
    """Cursor over the decoded bytes."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self.offset

    def byte(self) -> int:
        if self.offset >= len(self._data):
            raise TruncatedDataError(self.offset)
        value = self._data[self.offset]
        self.offset += 1
        return value

    def varint(self) -> int:
        start = self.offset
        result = 0
        for shift in range(0, 7 * MAX_VARINT_BYTES, 7):
            b = self.byte()
            result |= (b & 0x7F) << shift
            if not b & 0x80:
                if result > MAX_U32:
                    raise InvalidVarintError(start)
                return result
        raise InvalidVarintError(start)

    def length(self, what: str) -> int:
        value = self.varint()
        if value > MAX_BUCKET_LENGTH:
            raise InvalidCardCountError(what, value)
        return value


def encode_varint(value: int) -> bytes:
    """Canonical (shortest) varint for an unsigned 32-bit value."""
    if value < 0 or value > MAX_U32:
        raise ValueError(f"varint out of range: {value}")

    out = bytearray()
    while True:
        b = value & 0x7F
        value >>= 7
        if value:
            out.append(b | 0x80)
        else:
            out.append(b)
            return bytes(out)


# =============================================================================
# DECODING
# =============================================================================


def _b64decode(code: str) -> bytes:
    """
    Base64 text to bytes, with padding optional.

    A code cut at the text level can leave one character past a full
    group, which no byte string encodes to: that is a FormatError. Cuts
    that land on whole bytes decode here and fail later as truncated data.
    """
    stripped = "".join(code.split())
    if not stripped:
        raise FormatError("Deck code is empty.")

    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError("Deck code is not valid base64.", detail=str(e)) from e


def _read_card_buckets(
    reader: _Reader,
    read_single: Callable[[], tuple[int, ...]],
    read_multi: Callable[[], tuple[tuple[int, ...], int]],
    what: str,
) -> list[tuple[tuple[int, ...], int]]:
    """
    Read the x1 / x2 / xN bucket triple.

    Returns (key, count) pairs; key is whatever the entry reader returns.
    """
    entries: list[tuple[tuple[int, ...], int]] = []

    for count in (1, 2):
        for _ in range(reader.length(f"{what} x{count} bucket")):
            entries.append((read_single(), count))

    for _ in range(reader.length(f"{what} xN bucket")):
        key, count = read_multi()
        if count < 1:
            raise InvalidCardCountError(f"{what} count for {key}", count)
        entries.append((key, count))

    return entries


def _read_cards(reader: _Reader) -> list[tuple[int, int]]:
    def single() -> tuple[int, ...]:
        return (reader.varint(),)

    def multi() -> tuple[tuple[int, ...], int]:
        card_id = reader.varint()
        return (card_id,), reader.varint()

    return [(key[0], count) for key, count in _read_card_buckets(reader, single, multi, "card")]


def _read_sideboard(reader: _Reader) -> list[tuple[int, int]]:
    """Sideboard section: (card, owner) entries, returned as (owner, card) pairs."""

    def single() -> tuple[int, ...]:
        card_id = reader.varint()
        return (card_id, reader.varint())

    def multi() -> tuple[tuple[int, ...], int]:
        card_id = reader.varint()
        count = reader.varint()
        return (card_id, reader.varint()), count

    pairs: list[tuple[int, int]] = []
    for (card_id, owner_id), count in _read_card_buckets(reader, single, multi, "sideboard"):
        # Pairs repeat once per copy, so the count is bounded like a bucket
        if count > MAX_BUCKET_LENGTH:
            raise InvalidCardCountError(f"sideboard count for {card_id}", count)
        pairs.extend([(owner_id, card_id)] * count)
    return pairs


# Trailing sections by marker byte
_TRAILING_SECTIONS: dict[int, Callable[[_Reader, StructuralDeck], None]] = {
    SECTION_NONE: lambda _reader, _deck: None,
    SECTION_SIDEBOARD: lambda reader, deck: deck.sideboard.extend(_read_sideboard(reader)),
}


def decode(code: str) -> StructuralDeck:
    """
    Decode a deck code.

    Duplicate card ids across buckets are merged and flagged on the result.

    Args:
        code: Base64 deck code (padding optional, whitespace ignored)

    Returns:
        The StructuralDeck carried by the code

    Raises:
        FormatError: Not base64, or an unknown trailing section
        UnsupportedVersionError: Unknown header
        InvalidVarintError: Overlong or out-of-range varint
        TruncatedDataError: Code ends mid-field
        InvalidCardCountError: Absurd bucket length or zero count
    """
    reader = _Reader(_b64decode(code))

    reserved = reader.byte()
    version = reader.varint()
    if reserved != RESERVED_BYTE or version != DECK_CODE_VERSION:
        raise UnsupportedVersionError(version, reserved)

    format_tag = reader.varint()

    hero_ids = [reader.varint() for _ in range(reader.length("hero count"))]

    deck = StructuralDeck(
        format_tag=format_tag,
        hero_ids=hero_ids,
        cards=_read_cards(reader),
    )

    if reader.remaining:
        marker = reader.byte()
        section = _TRAILING_SECTIONS.get(marker)
        if section is None:
            raise FormatError(
                "Deck code has an unknown trailing section.",
                detail=f"marker {marker} at offset {reader.offset - 1}",
            )
        section(reader, deck)

    if reader.remaining:
        logger.debug("Ignoring %d trailing bytes in deck code", reader.remaining)

    return deck.normalized()


# =============================================================================
# ENCODING
# =============================================================================


def _write_buckets(
    out: bytearray,
    entries: Iterable[tuple[tuple[int, ...], int]],
) -> None:
    """
    Write the x1 / x2 / xN bucket triple.

    Entries are (key, count); key is written as-is except that in the xN
    bucket the count goes after the first key element.
    """
    buckets: dict[int, list[tuple[int, ...]]] = {1: [], 2: []}
    multi: list[tuple[tuple[int, ...], int]] = []
    for key, count in sorted(entries):
        if count in buckets:
            buckets[count].append(key)
        else:
            multi.append((key, count))

    for count in (1, 2):
        out += encode_varint(len(buckets[count]))
        for key in buckets[count]:
            for value in key:
                out += encode_varint(value)

    out += encode_varint(len(multi))
    for key, count in multi:
        out += encode_varint(key[0])
        out += encode_varint(count)
        for value in key[1:]:
            out += encode_varint(value)


def encode(deck: StructuralDeck) -> str:
    """
    Encode a deck as a deck code.

    Duplicate ids are merged first. Each bucket is written in ascending id
    order, so equal decks always produce the same code. The sideboard
    section is left out entirely when the deck has none.

    Raises:
        ValueError: If a count is below 1 or an id does not fit in 32 bits
    """
    normalized = deck.normalized()
    for card_id, count in normalized.cards:
        if count < 1:
            raise ValueError(f"Card {card_id} has count {count}")

    out = bytearray([RESERVED_BYTE])
    out += encode_varint(DECK_CODE_VERSION)
    out += encode_varint(normalized.format_tag)

    out += encode_varint(len(normalized.hero_ids))
    for hero_id in normalized.hero_ids:
        out += encode_varint(hero_id)

    _write_buckets(out, (((card_id,), count) for card_id, count in normalized.cards))

    if normalized.sideboard:
        out.append(SECTION_SIDEBOARD)
        pair_counts = Counter(normalized.sideboard)
        _write_buckets(
            out,
            (((card_id, owner_id), count) for (owner_id, card_id), count in pair_counts.items()),
        )

    return base64.b64encode(bytes(out)).decode("ascii")
