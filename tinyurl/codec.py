"""Base62 codec between record identifiers and short codes.

The alphabet order is part of the public URL format: changing it would make every
issued short code resolve to a different record.

Examples:
    >>> encode(1)
    'b'
    >>> encode(62)
    'ba'
    >>> decode("ba")
    62
"""

from typing import Final

from tinyurl.exceptions import InvalidCodeError

__all__ = ["ALPHABET", "MAX_CODE_LENGTH", "MAX_ID", "decode", "encode"]

ALPHABET: Final[str] = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
BASE: Final[int] = len(ALPHABET)

# Largest identifier a signed BIGINT primary key can hold.
MAX_ID: Final[int] = (1 << 63) - 1

_INDEX: Final[dict[str, int]] = {symbol: index for index, symbol in enumerate(ALPHABET)}


def encode(number: int) -> str:
    """Encode a non-negative integer, most significant symbol first.

    ``encode(0)`` returns an empty string. Store-assigned and snowflake ids are
    never 0, so the case does not reach a short URL.

    Raises:
        ValueError: If number is negative.
    """
    if number < 0:
        raise ValueError("Number must be non-negative")

    symbols: list[str] = []
    while number > 0:
        number, remainder = divmod(number, BASE)
        symbols.append(ALPHABET[remainder])
    symbols.reverse()
    return "".join(symbols)


# Longest code that can still decode to an id within MAX_ID.
MAX_CODE_LENGTH: Final[int] = len(encode(MAX_ID))


def decode(code: str) -> int:
    """Decode a short code back into the identifier it was encoded from.

    Raises:
        InvalidCodeError: If the code is empty, longer than MAX_CODE_LENGTH,
            contains a symbol outside the alphabet, or decodes to a value
            larger than MAX_ID.
    """
    if not code:
        raise InvalidCodeError("Short code must not be empty")
    if len(code) > MAX_CODE_LENGTH:
        raise InvalidCodeError(f"Short code is longer than {MAX_CODE_LENGTH} symbols")

    number = 0
    for symbol in code:
        index = _INDEX.get(symbol)
        if index is None:
            raise InvalidCodeError(f"Invalid symbol {symbol!r} in short code {code!r}")
        number = number * BASE + index

    if number > MAX_ID:
        raise InvalidCodeError(f"Short code {code!r} is out of range")
    return number
