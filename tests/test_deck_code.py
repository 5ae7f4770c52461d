"""Tests for the deck code codec."""

import base64

import pytest

from deckforge.models.deck import StructuralDeck
from deckforge.parsers.deck_code import (
    MAX_BUCKET_LENGTH,
    DeckCodeError,
    FormatError,
    InvalidCardCountError,
    InvalidVarintError,
    TruncatedDataError,
    UnsupportedVersionError,
    decode,
    encode,
    encode_varint,
)
from tests.conftest import ETC_ID, KNOWN_BAND, KNOWN_CODE, KNOWN_HERO


def _raw(*parts: bytes | int) -> str:
    """Base64 of a hand-built byte string; ints are written as varints."""
    out = bytearray()
    for part in parts:
        out += encode_varint(part) if isinstance(part, int) else part
    return base64.b64encode(bytes(out)).decode("ascii")


def _header(format_tag: int = 2) -> bytes:
    return b"\x00" + encode_varint(1) + encode_varint(format_tag)


class TestKnownCode:
    def test_decodes_hero_and_cards(self) -> None:
        """Real deck code decodes to one hero and a non-empty card list."""
        deck = decode(KNOWN_CODE)

        assert deck.format_tag == 2
        assert deck.hero_ids == [KNOWN_HERO]
        assert deck.cards
        assert deck.card_count() == 40
        assert not deck.duplicates_merged

    def test_decodes_sideboard_pairs(self) -> None:
        """Sideboard entries are (owner, card) pairs."""
        deck = decode(KNOWN_CODE)

        assert sorted(deck.sideboard) == [(ETC_ID, card_id) for card_id in KNOWN_BAND]
        assert ETC_ID in deck.card_counts()

    def test_reencodes_to_same_code(self) -> None:
        """The code is already canonical, so encoding gives it back."""
        assert encode(decode(KNOWN_CODE)) == KNOWN_CODE

    def test_tolerates_missing_padding_and_whitespace(self) -> None:
        """Padding is optional and whitespace is ignored."""
        mangled = KNOWN_CODE.rstrip("=")
        mangled = mangled[:20] + "\n  " + mangled[20:]

        assert decode(mangled) == decode(KNOWN_CODE)


class TestTruncation:
    @pytest.mark.parametrize("cut", range(1, 22))
    def test_cut_inside_sideboard_is_truncated(self, cut: int) -> None:
        """Dropping any part of the sideboard section is detected."""
        raw = base64.b64decode(KNOWN_CODE)
        code = base64.b64encode(raw[:-cut]).decode("ascii")

        with pytest.raises(TruncatedDataError):
            decode(code)

    def test_cut_at_section_boundary_drops_sideboard(self) -> None:
        """Without its trailing section the code is still a complete deck."""
        raw = base64.b64decode(KNOWN_CODE)
        code = base64.b64encode(raw[:-22]).decode("ascii")

        deck = decode(code)

        assert deck.sideboard == []
        assert deck.card_count() == 40

    @pytest.mark.parametrize("cut", [23, 30, 60, 100])
    def test_cut_inside_main_deck_is_truncated(self, cut: int) -> None:
        """Dropping bytes from the card buckets is detected."""
        raw = base64.b64decode(KNOWN_CODE)
        code = base64.b64encode(raw[:-cut]).decode("ascii")

        with pytest.raises(TruncatedDataError):
            decode(code)

    def test_text_cut_mid_group_is_not_base64(self) -> None:
        """Cutting characters can leave a dangling base64 character; that is a format error."""
        with pytest.raises(FormatError):
            decode(KNOWN_CODE[:-3])

    def test_text_cut_on_group_boundary_is_truncated(self) -> None:
        """Cutting a whole base64 group drops whole bytes, so the data is truncated."""
        with pytest.raises(TruncatedDataError):
            decode(KNOWN_CODE[:-4])

    def test_unterminated_varint_is_truncated(self) -> None:
        """A varint whose last byte has the continuation bit set."""
        with pytest.raises(TruncatedDataError):
            decode(_raw(_header(), 1, b"\xad"))


class TestMalformedInput:
    def test_not_base64(self) -> None:
        """Characters outside the base64 alphabet."""
        with pytest.raises(FormatError):
            decode("this is not a deck code!")

    def test_empty(self) -> None:
        """Blank input."""
        with pytest.raises(FormatError):
            decode("   ")

    def test_wrong_version(self) -> None:
        """Version other than 1."""
        with pytest.raises(UnsupportedVersionError) as exc_info:
            decode(_raw(b"\x00", 2, 2, 0, 0, 0, 0))

        assert exc_info.value.version == 2

    def test_wrong_reserved_byte(self) -> None:
        """Reserved byte other than 0."""
        with pytest.raises(UnsupportedVersionError):
            decode(_raw(b"\x01", 1, 2, 0, 0, 0, 0))

    def test_overlong_varint(self) -> None:
        """Six continuation bytes are more than a 32-bit varint allows."""
        with pytest.raises(InvalidVarintError):
            decode(_raw(_header(), 1, b"\xff\xff\xff\xff\xff\x01"))

    def test_varint_above_32_bits(self) -> None:
        """Five bytes that decode past 2**32 - 1."""
        with pytest.raises(InvalidVarintError):
            decode(_raw(_header(), 1, b"\xff\xff\xff\xff\x1f"))

    def test_absurd_bucket_length(self) -> None:
        """Bucket lengths are capped before anything is allocated."""
        with pytest.raises(InvalidCardCountError):
            decode(_raw(_header(), 1, 813, MAX_BUCKET_LENGTH + 1))

    def test_zero_count_in_multi_bucket(self) -> None:
        """A card with zero copies."""
        with pytest.raises(InvalidCardCountError):
            decode(_raw(_header(), 1, 813, 0, 0, 1, 672, 0))

    def test_unknown_trailing_section(self) -> None:
        """Marker bytes other than 0 and 1."""
        with pytest.raises(FormatError):
            decode(_raw(_header(), 1, 813, 1, 672, 0, 0, b"\x07"))

    def test_errors_share_base_class(self) -> None:
        """Every codec error is a DeckCodeError with a 400 status."""
        with pytest.raises(DeckCodeError) as exc_info:
            decode("@@@@")

        assert exc_info.value.status_code == 400


class TestDecodeDetails:
    def test_duplicates_are_merged_and_flagged(self) -> None:
        """Same id in the x1 and x2 buckets sums to three copies."""
        deck = decode(_raw(_header(), 1, 813, 1, 672, 1, 672, 0))

        assert deck.cards == [(672, 3)]
        assert deck.duplicates_merged

    def test_multi_bucket_counts(self) -> None:
        """Counts above two come from the xN bucket."""
        deck = decode(_raw(_header(1), 1, 813, 0, 0, 1, 315, 5))

        assert deck.format_tag == 1
        assert deck.cards == [(315, 5)]

    def test_unknown_format_tag_is_kept(self) -> None:
        """Format tags are opaque."""
        deck = decode(_raw(_header(99), 0, 0, 0, 0))

        assert deck.format_tag == 99

    def test_empty_sideboard_marker(self) -> None:
        """Marker 0 means no sideboard."""
        deck = decode(_raw(_header(), 1, 813, 1, 672, 0, 0, b"\x00"))

        assert deck.sideboard == []

    def test_trailing_bytes_are_ignored(self) -> None:
        """Bytes after the last section do not fail the decode."""
        deck = decode(_raw(_header(), 1, 813, 1, 672, 0, 0, b"\x00\x05\x06"))

        assert deck.cards == [(672, 1)]


class TestEncode:
    def test_round_trip(self) -> None:
        """decode(encode(deck)) gives the deck back."""
        deck = StructuralDeck(
            format_tag=2,
            hero_ids=[813],
            cards=[(672, 1), (315, 2), (662, 2), (555, 4)],
            sideboard=[(ETC_ID, 76984), (ETC_ID, 78079)],
        )

        decoded = decode(encode(deck))

        assert decoded.format_tag == 2
        assert decoded.hero_ids == [813]
        assert decoded.card_counts() == deck.card_counts()
        assert sorted(decoded.sideboard) == sorted(deck.sideboard)

    def test_order_does_not_change_code(self) -> None:
        """Equal decks listed in different orders encode identically."""
        a = StructuralDeck(format_tag=2, hero_ids=[813], cards=[(672, 1), (315, 2), (555, 3)])
        b = StructuralDeck(format_tag=2, hero_ids=[813], cards=[(555, 3), (672, 1), (315, 2)])

        assert encode(a) == encode(b)

    def test_duplicates_merged_before_encoding(self) -> None:
        """Split counts for one id are written as a single entry."""
        split = StructuralDeck(format_tag=2, hero_ids=[813], cards=[(672, 1), (672, 1)])
        merged = StructuralDeck(format_tag=2, hero_ids=[813], cards=[(672, 2)])

        assert encode(split) == encode(merged)

    def test_no_sideboard_section_when_empty(self) -> None:
        """Decks without a sideboard end right after the card buckets."""
        deck = StructuralDeck(format_tag=2, hero_ids=[813], cards=[(672, 1)])

        raw = base64.b64decode(encode(deck))

        assert raw == _header() + bytes([1]) + encode_varint(813) + bytes([1]) + encode_varint(672) + b"\x00\x00"

    def test_repeated_sideboard_pair_uses_count(self) -> None:
        """Two copies of a sideboard card survive the round trip."""
        deck = StructuralDeck(
            format_tag=2,
            hero_ids=[813],
            cards=[(ETC_ID, 1)],
            sideboard=[(ETC_ID, 76984), (ETC_ID, 76984)],
        )

        assert decode(encode(deck)).sideboard == [(ETC_ID, 76984), (ETC_ID, 76984)]

    def test_rejects_zero_count(self) -> None:
        """Counts below one cannot be encoded."""
        with pytest.raises(ValueError):
            encode(StructuralDeck(format_tag=2, hero_ids=[813], cards=[(672, 0)]))


class TestVarint:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, b"\x00"),
            (127, b"\x7f"),
            (128, b"\x80\x01"),
            (813, b"\xad\x06"),
            (0xFFFFFFFF, b"\xff\xff\xff\xff\x0f"),
        ],
    )
    def test_canonical_encoding(self, value: int, expected: bytes) -> None:
        """Shortest little-endian base-128 form."""
        assert encode_varint(value) == expected

    @pytest.mark.parametrize("value", [-1, 0x100000000])
    def test_out_of_range(self, value: int) -> None:
        """Only unsigned 32-bit values."""
        with pytest.raises(ValueError):
            encode_varint(value)
