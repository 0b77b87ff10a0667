"""Cache key schema for remote function results.

Key format: {id}|{stringified_arg}

Where:
- id: remote function identifier (not escaped; must not contain "|")
- stringified_arg: output of stringify_remote_arg, "" when there is no argument

The argument part is Base64URL, so it never contains "|". An id that does
contain "|" can still collide with another (id, arg) pair.
"""

from __future__ import annotations


class CacheKeys:
    """Cache key generator for remote function calls."""

    SEPARATOR = "|"

    @classmethod
    def remote(cls, id: str, stringified_arg: str) -> str:
        """Key for a remote function call."""
        return id + cls.SEPARATOR + stringified_arg

    @classmethod
    def parse_key(cls, key: str) -> tuple[str, str] | None:
        """Split a cache key on the first separator into ``(id, stringified_arg)``.

        Returns None if the key has no separator.
        """
        id, sep, stringified_arg = key.partition(cls.SEPARATOR)
        if not sep:
            return None
        return id, stringified_arg


def create_remote_cache_key(id: str, stringified_arg: str) -> str:
    return CacheKeys.remote(id, stringified_arg)
