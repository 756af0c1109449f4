"""
base32.py — Base32 (RFC 4648) codec for OTP secrets.

The Base32 text is what users type into (or read out of) authenticator apps,
so decoding is forgiving:

- whitespace anywhere is ignored ("JBSW Y3DP" == "JBSWY3DP")
- case-insensitive over the alphabet A-Z, 2-7
- padding is optional; once a '=' is seen only '=' and whitespace may follow

Encoding defaults to the display form: groups of four symbols, no padding,
upper case.

Example:
    >>> encode(b"12345678901234567890")
    'GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ'
    >>> decode("gezd gnbv gy3t qojq gezd gnbv gy3t qojq")
    bytearray(b'12345678901234567890')
"""

from typing import Union

from .config import MAX_SECRET_BYTES
from .errors import MissingValueError, SecretFormatError, SecretTooLongError

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
PAD_CHAR = "="

_DECODE_MAP = {ch: i for i, ch in enumerate(ALPHABET)}
_DECODE_MAP.update({ch.lower(): i for i, ch in enumerate(ALPHABET)})

BytesLike = Union[bytes, bytearray, memoryview]


def decode(text: str, max_length: int = MAX_SECRET_BYTES) -> bytearray:
    """
    Decode Base32 text into raw bytes.

    The result is a bytearray so the caller can zero it once done with it.

    Every symbol adds 5 bits to a big-endian bit buffer; a byte is emitted
    whenever 8 bits are available. Without explicit padding, a trailing group
    of 5 or more leftover bits yields one more (left-aligned) byte, so that
    hand-typed secrets with a missing last symbol still decode. Explicit
    padding suppresses that tail byte: leftover bits are then discarded.

    Arguments:
        text: Base32 text (whitespace and lower case allowed)
        max_length: upper bound on the decoded size

    Raises:
        MissingValueError: text is None
        SecretFormatError: unknown symbol, or a symbol after padding
        SecretTooLongError: decoded data would exceed max_length bytes
    """
    if text is None:
        raise MissingValueError("Secret cannot be None.")

    result = bytearray()
    buffer = 0
    bits = 0
    padded = False

    try:
        for ch in text:
            if ch.isspace():
                continue
            if ch == PAD_CHAR:
                padded = True
                continue
            if padded:
                raise SecretFormatError(f"Malformed padding: character {ch!r} found after padding.")

            value = _DECODE_MAP.get(ch)
            if value is None:
                raise SecretFormatError(f"Invalid character {ch!r}.")

            buffer = ((buffer << 5) | value) & 0xFFF  # never need more than 12 bits
            bits += 5
            if bits >= 8:
                bits -= 8
                _append(result, (buffer >> bits) & 0xFF, max_length)

        if not padded and bits >= 5:
            _append(result, (buffer << (8 - bits)) & 0xFF, max_length)
    except (SecretFormatError, SecretTooLongError):
        result[:] = bytes(len(result))
        raise

    return result


def _append(result: bytearray, byte: int, max_length: int) -> None:
    if len(result) >= max_length:
        raise SecretTooLongError(
            f"Secret cannot be longer than {max_length * 8} bits ({max_length} bytes)."
        )
    result.append(byte)


def encode(
    data: BytesLike,
    *,
    spacing: bool = True,
    padding: bool = False,
    uppercase: bool = True,
) -> str:
    """
    Encode raw bytes as Base32 text.

    Arguments:
        data: bytes to encode (empty -> "")
        spacing: insert a space after every 4 symbols (padding counted too)
        padding: append '=' up to a multiple of 8 symbols
        uppercase: False gives lower-case symbols

    Returns:
        str: the encoded text
    """
    if data is None:
        raise MissingValueError("Data cannot be None.")

    alphabet = ALPHABET if uppercase else ALPHABET.lower()
    symbols = []
    buffer = 0
    bits = 0
    for byte in memoryview(data).cast("B"):
        buffer = ((buffer << 8) | byte) & 0xFFF
        bits += 8
        while bits >= 5:
            bits -= 5
            symbols.append(alphabet[(buffer >> bits) & 0x1F])

    if bits > 0:
        symbols.append(alphabet[(buffer << (5 - bits)) & 0x1F])

    if padding:
        symbols.extend(PAD_CHAR * (-len(symbols) % 8))

    if spacing:
        return " ".join("".join(symbols[i:i + 4]) for i in range(0, len(symbols), 4))
    return "".join(symbols)
