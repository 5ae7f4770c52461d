from deckforge.parsers.deck_code import (
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

__all__ = [
    "DeckCodeError",
    "FormatError",
    "InvalidCardCountError",
    "InvalidVarintError",
    "TruncatedDataError",
    "UnsupportedVersionError",
    "decode",
    "encode",
    "encode_varint",
]
