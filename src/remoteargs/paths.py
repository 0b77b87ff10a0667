from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[/\\]")


def get_relative_path(from_path: str, to_path: str) -> str:
    """Like ``os.path.relpath`` from the directory of ``from_path``, always using ``/``.

    Both ``/`` and ``\\`` are treated as separators.

    Example:
        >>> get_relative_path("a/b/c.js", "a/d/e.js")
        '../d/e.js'
    """
    from_parts = _SEPARATORS.split(from_path)
    to_parts = _SEPARATORS.split(to_path)
    from_parts.pop()  # dirname

    while from_parts and to_parts and from_parts[0] == to_parts[0]:
        from_parts.pop(0)
        to_parts.pop(0)

    return "/".join([".."] * len(from_parts) + to_parts)
