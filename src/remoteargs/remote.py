"""Remote function argument serialization.

An argument is turned into devalue text (with custom types handled by the
caller's transport registry), encoded as UTF-8 and then as unpadded
Base64URL. The result is a single opaque string that is valid both as a URL
segment and as a file name, which is what prerendering needs.

The empty string is reserved for "no argument" (``UNDEFINED``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from remoteargs.core import base64url, devalue
from remoteargs.core.devalue import UNDEFINED

logger = logging.getLogger(__name__)

INVALIDATED_PARAM = "x-sveltekit-invalidated"

TRAILING_SLASH_PARAM = "x-sveltekit-trailing-slash"


class SupportsTransport(Protocol):
    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]


@dataclass(frozen=True)
class Transporter:
    """Encode/decode pair for one custom type.

    ``encode`` must return the plain data for values of its type and a falsy
    value for anything else. ``decode`` receives that plain data back.
    """

    encode: Callable[[Any], Any]
    decode: Callable[[Any], Any]


Transport = Mapping[str, SupportsTransport]


def stringify(data: Any, transport: Transport) -> str:
    """Stringify ``data`` using the transport's encoders."""
    encoders = {key: value.encode for key, value in transport.items()}
    return devalue.stringify(data, encoders)


def parse(text: str, transport: Transport) -> Any:
    """Parse devalue text using the transport's decoders."""
    decoders = {key: value.decode for key, value in transport.items()}
    return devalue.parse(text, decoders)


def stringify_remote_arg(arg: Any, transport: Transport) -> str:
    """Stringify the argument (if any) for a remote function.

    Returns ``""`` for ``UNDEFINED``; otherwise a string drawn only from
    ``A-Z a-z 0-9 - _``.
    """
    if arg is UNDEFINED:
        return ""

    json_string = stringify(arg, transport)
    return base64url.encode_text(json_string)


def parse_remote_args(stringified_arg: str, transport: Transport) -> Any:
    """Parse the argument (if any) for a remote function.

    Raises:
        InvalidBase64Url: If the string is not canonical Base64URL.
        UnicodeDecodeError: If the decoded bytes are not UTF-8.
        DevalueError: If the payload is not valid devalue text.
    """
    if not stringified_arg:
        return UNDEFINED

    try:
        json_string = base64url.decode_text(stringified_arg)
        return parse(json_string, transport)
    except ValueError as exc:
        logger.debug("Rejected remote argument %.32r: %s", stringified_arg, exc)
        raise
