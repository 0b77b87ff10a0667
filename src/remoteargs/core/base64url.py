"""Strict URL-safe Base64 codec.

Encoding emits the unpadded variant (alphabet ``A-Z a-z 0-9 - _``).
Decoding accepts trailing ``=`` padding inside each 4-character window but
rejects anything a canonical encoder could not have produced:

- characters outside the alphabet (``InvalidCharacter``)
- padding followed by data in the same window (``InvalidPadding``)
- partial windows whose unused low bits are non-zero (``InvalidPadding``)

The output is safe as a URL path segment and as a file name.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from types import MappingProxyType
from typing import Final, Literal

from remoteargs.config import settings

logger = logging.getLogger(__name__)

_B64URL_ALPHABET: Final[str] = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

_DECODE_MAP: Final = MappingProxyType({char: i for i, char in enumerate(_B64URL_ALPHABET)})

PAD: Final[str] = "="

EncoderBackend = Literal["portable", "native"]


class InvalidBase64Url(ValueError):
    pass


class InvalidCharacter(InvalidBase64Url):
    """A character outside the alphabet (and not ``=``) was found."""

    def __init__(self, position: int, character: str) -> None:
        super().__init__(f"Invalid character {character!r} at position {position}")
        self.position = position
        self.character = character


class InvalidPadding(InvalidBase64Url):
    """Padding is misplaced or a partial window carries non-zero trailing bits."""

    def __init__(self, position: int) -> None:
        super().__init__(f"Invalid padding in window at position {position}")
        self.position = position


def _encode_portable(data: bytes) -> str:
    out: list[str] = []
    for i in range(0, len(data), 3):
        buffer = 0
        size = 0
        for byte in data[i : i + 3]:
            buffer = (buffer << 8) | byte
            size += 8
        while size >= 6:
            out.append(_B64URL_ALPHABET[(buffer >> (size - 6)) & 0x3F])
            size -= 6
        if size > 0:
            # Final partial group: zero-fill the low bits
            out.append(_B64URL_ALPHABET[(buffer << (6 - size)) & 0x3F])
    return "".join(out)


def _encode_native(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip(PAD)


_ENCODERS: Final[MappingProxyType[str, Callable[[bytes], str]]] = MappingProxyType(
    {
        "portable": _encode_portable,
        "native": _encode_native,
    }
)

_encoder: Callable[[bytes], str] = _ENCODERS[settings.codec_backend]


def set_encoder_backend(name: EncoderBackend) -> None:
    """Select the encoder implementation.

    Both backends produce byte-identical output; ``native`` delegates the
    bit packing to the standard library.
    """
    global _encoder
    try:
        _encoder = _ENCODERS[name]
    except KeyError:
        raise ValueError(f"Unknown encoder backend: {name!r}") from None
    logger.debug("Base64URL encoder backend set to %s", name)


def get_encoder_backend() -> str:
    for name, impl in _ENCODERS.items():
        if impl is _encoder:
            return name
    raise RuntimeError("encoder backend not registered")  # pragma: no cover


def encode(data: bytes | bytearray | memoryview) -> str:
    """Encode bytes to unpadded Base64URL.

    One input byte yields two symbols, two bytes yield three, three yield four.
    """
    return _encoder(bytes(data))


def decode(encoded: str) -> bytes:
    """Decode Base64URL, with or without trailing ``=`` padding.

    Raises:
        InvalidCharacter: If a character is outside the alphabet.
        InvalidPadding: If padding is not trailing within its window, or the
            encoding is non-canonical.
    """
    result = bytearray()
    length = len(encoded)

    for i in range(0, length, 4):
        chunk = 0
        bits_read = 0
        for j in range(4):
            pos = i + j
            if pos >= length or encoded[pos] == PAD:
                continue
            if j > 0 and encoded[pos - 1] == PAD:
                raise InvalidPadding(i)
            value = _DECODE_MAP.get(encoded[pos])
            if value is None:
                raise InvalidCharacter(pos, encoded[pos])
            chunk |= value << ((3 - j) * 6)
            bits_read += 6

        if bits_read < 24:
            if bits_read == 12:
                unused = chunk & 0xFFFF
            elif bits_read == 18:
                unused = chunk & 0xFF
            else:
                raise InvalidPadding(i)
            if unused != 0:
                raise InvalidPadding(i)

        for k in range(bits_read // 8):
            result.append((chunk >> (16 - k * 8)) & 0xFF)

    return bytes(result)


def encode_text(value: str) -> str:
    """Encode a string as UTF-8, then as Base64URL without padding."""
    return encode(value.encode("utf-8"))


def decode_text(value: str) -> str:
    """Decode a Base64URL string produced by :func:`encode_text`."""
    return decode(value).decode("utf-8")
