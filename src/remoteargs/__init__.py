"""URL-safe and filename-safe serialization of remote function arguments.

Main Components:
    - base64url: strict unpadded Base64URL codec
    - devalue: structured-value serializer (cycles, sets, maps, dates, custom types)
    - stringify_remote_arg / parse_remote_args: argument <-> opaque string
    - create_remote_cache_key: ``id|arg`` cache keys

Example:
    >>> from remoteargs import UNDEFINED, parse_remote_args, stringify_remote_arg
    >>> encoded = stringify_remote_arg({"page": 2}, {})
    >>> parse_remote_args(encoded, {})
    {'page': 2}
"""

from remoteargs.cache.keys import CacheKeys, create_remote_cache_key
from remoteargs.core.base64url import (
    InvalidBase64Url,
    InvalidCharacter,
    InvalidPadding,
)
from remoteargs.core.devalue import UNDEFINED, DevalueError
from remoteargs.paths import get_relative_path
from remoteargs.remote import (
    INVALIDATED_PARAM,
    TRAILING_SLASH_PARAM,
    Transport,
    Transporter,
    parse,
    parse_remote_args,
    stringify,
    stringify_remote_arg,
)

__version__ = "0.1.0"

__all__ = [
    # Remote arguments
    "stringify_remote_arg",
    "parse_remote_args",
    "stringify",
    "parse",
    "Transport",
    "Transporter",
    "UNDEFINED",
    # Cache keys
    "CacheKeys",
    "create_remote_cache_key",
    # Errors
    "InvalidBase64Url",
    "InvalidCharacter",
    "InvalidPadding",
    "DevalueError",
    # Misc
    "get_relative_path",
    "INVALIDATED_PARAM",
    "TRAILING_SLASH_PARAM",
]
