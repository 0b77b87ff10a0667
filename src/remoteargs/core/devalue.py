"""Structured-value serialization in the devalue wire format.

Values are flattened into a JSON array where each slot holds either a
primitive or a container whose members are integer references into the same
array. Index 0 is the root. This makes shared and cyclic references
round-trip, and lets special floats travel as reserved negative indices:

    -1 UNDEFINED   -2 hole   -3 NaN   -4 +inf   -5 -inf   -6 -0.0

Containers that JSON cannot express are written as tagged arrays, e.g.
``["Set", 1, 2]``, ``["Map", k, v]``, ``["Date", "2024-01-01T00:00:00.000Z"]``
or ``["BigInt", "9007199254740993"]``. Custom types are handled by reducers
(``tag -> fn(value) -> plain | falsy``) on the way out and revivers
(``tag -> fn(plain) -> value``) on the way in.

Example:
    >>> stringify({"a": [1, 2], "b": None})
    '[{"a":1,"b":4},[2,3],1,2,null]'
"""

from __future__ import annotations

import inspect
import math
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, Final

import orjson

UNDEFINED_INDEX: Final = -1
HOLE: Final = -2
NAN: Final = -3
POSITIVE_INFINITY: Final = -4
NEGATIVE_INFINITY: Final = -5
NEGATIVE_ZERO: Final = -6

# Integers beyond this cannot be represented exactly by a JSON double
MAX_SAFE_INTEGER: Final = 2**53 - 1

_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")

_REGEXP_FLAGS: Final = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

Reducer = Callable[[Any], Any]
Reviver = Callable[[Any], Any]


class _Undefined:
    """Explicit "no value", distinct from ``None`` (which is JSON ``null``)."""

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED: Final = _Undefined()


class DevalueError(ValueError):
    """Raised when a value cannot be stringified or a payload cannot be parsed.

    Attributes:
        message: Human-readable reason.
        path: Location of the offending value inside the root, e.g. ``.user.tags[2]``.
    """

    def __init__(self, message: str, path: str = "") -> None:
        super().__init__(f"{message} (at {path})" if path else message)
        self.message = message
        self.path = path


def _dumps(value: Any) -> str:
    return orjson.dumps(value).decode("utf-8")


def _is_primitive(thing: Any) -> bool:
    return thing is None or isinstance(thing, (bool, int, float, str))


def _describe(thing: Any) -> str:
    return _dumps(thing) if _is_primitive(thing) else "..."


def _key_path(key: str) -> str:
    return f".{key}" if _IDENTIFIER.match(key) else f"[{_dumps(key)}]"


def _format_date(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
        f".{value.microsecond // 1000:03d}Z"
    )


def _parse_date(text: Any) -> datetime:
    if not isinstance(text, str) or not text:
        raise DevalueError("Invalid date")
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise DevalueError(f"Invalid date {text!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _payload(value: list[Any], tag: str) -> Any:
    if len(value) < 2:
        raise DevalueError(f"Missing payload for {tag}")
    return value[1]


def _sort_key(item: Any) -> tuple[str, str]:
    return type(item).__name__, repr(item)


def _ordered(items: Any) -> list[Any]:
    # Set iteration order depends on hash seeding; sort so the output is
    # stable across processes. Mixed types fall back to type name and repr.
    try:
        return sorted(items)
    except TypeError:
        return sorted(items, key=_sort_key)


def stringify(value: Any, reducers: Mapping[str, Reducer] | None = None) -> str:
    """Serialize ``value`` to devalue text.

    Only values that :func:`parse` can rebuild equal to the input are accepted.
    Datetimes must be timezone-aware with millisecond precision, and Set
    members and Map keys must not be tuples or frozensets, which would come
    back as unhashable lists and sets.

    Args:
        value: Any graph of primitives, lists, tuples, dicts, sets, datetimes,
            ``UNDEFINED`` and values claimed by a reducer.
        reducers: Mapping of type tag to a function returning the plain data
            for values of that type, or a falsy value to decline.

    Raises:
        DevalueError: If a value cannot be stringified or would not survive
            the round trip. ``path`` locates it inside ``value``.
    """
    custom = list((reducers or {}).items())
    stringified: list[str] = []
    indexes: dict[Any, int] = {}
    # Holds reducer output alive so id() values are not reused mid-walk
    refs: list[Any] = []
    claimed: set[int] = set()
    keys: list[str] = []

    def check_hashable(thing: Any) -> None:
        if isinstance(thing, (tuple, frozenset)) and id(thing) not in claimed:
            raise DevalueError(
                f"Cannot use a {type(thing).__name__} as a Set member or Map key",
                "".join(keys),
            )

    def flatten(thing: Any, hashed: bool = False) -> int:
        if inspect.isroutine(thing) or inspect.isclass(thing):
            raise DevalueError("Cannot stringify a function", "".join(keys))

        if thing is UNDEFINED:
            return UNDEFINED_INDEX
        if isinstance(thing, float):
            if math.isnan(thing):
                return NAN
            if thing == math.inf:
                return POSITIVE_INFINITY
            if thing == -math.inf:
                return NEGATIVE_INFINITY
            if thing == 0 and math.copysign(1.0, thing) < 0:
                return NEGATIVE_ZERO

        identity = (type(thing), thing) if _is_primitive(thing) else id(thing)
        if identity in indexes:
            if hashed:
                check_hashable(thing)
            return indexes[identity]

        index = len(stringified)
        stringified.append("")
        indexes[identity] = index
        refs.append(thing)

        for tag, reduce in custom:
            reduced = reduce(thing)
            if reduced:
                claimed.add(id(thing))
                stringified[index] = f"[{_dumps(tag)},{flatten(reduced)}]"
                return index

        if hashed:
            check_hashable(thing)
        stringified[index] = flatten_builtin(thing)
        return index

    def flatten_builtin(thing: Any) -> str:
        if thing is None or isinstance(thing, (bool, str, float)):
            return _dumps(thing)

        if isinstance(thing, int):
            if abs(thing) > MAX_SAFE_INTEGER:
                return f'["BigInt",{_dumps(str(thing))}]'
            return str(thing)

        if isinstance(thing, datetime):
            if thing.utcoffset() is None:
                raise DevalueError("Cannot stringify a naive datetime", "".join(keys))
            if thing.microsecond % 1000:
                raise DevalueError(
                    "Cannot stringify a datetime with sub-millisecond precision",
                    "".join(keys),
                )
            return f'["Date",{_dumps(_format_date(thing))}]'

        if isinstance(thing, (list, tuple)):
            parts = []
            for i, item in enumerate(thing):
                keys.append(f"[{i}]")
                parts.append(str(flatten(item)))
                keys.pop()
            return "[" + ",".join(parts) + "]"

        if isinstance(thing, (set, frozenset)):
            parts = ['"Set"']
            for item in _ordered(thing):
                keys.append(f".add({_describe(item)})")
                parts.append(str(flatten(item, hashed=True)))
                keys.pop()
            return "[" + ",".join(parts) + "]"

        if isinstance(thing, Mapping):
            if all(isinstance(key, str) for key in thing):
                parts = []
                for key, item in thing.items():
                    keys.append(_key_path(key))
                    parts.append(f"{_dumps(key)}:{flatten(item)}")
                    keys.pop()
                return "{" + ",".join(parts) + "}"

            parts = ['"Map"']
            for key, item in thing.items():
                keys.append(f".get({_describe(key)})")
                parts.append(str(flatten(key, hashed=True)))
                parts.append(str(flatten(item)))
                keys.pop()
            return "[" + ",".join(parts) + "]"

        raise DevalueError("Cannot stringify arbitrary non-POJOs", "".join(keys))

    try:
        root = flatten(value)
    except RecursionError as exc:
        raise DevalueError("Cannot stringify: nested too deeply") from exc
    if root < 0:
        return str(root)
    return "[" + ",".join(stringified) + "]"


def parse(serialized: str | bytes, revivers: Mapping[str, Reviver] | None = None) -> Any:
    """Revive a value from devalue text produced by :func:`stringify`."""
    return unflatten(orjson.loads(serialized), revivers)


def unflatten(parsed: Any, revivers: Mapping[str, Reviver] | None = None) -> Any:
    """Revive a value from an already JSON-decoded devalue payload."""
    custom = dict(revivers or {})

    if type(parsed) is int:
        values: list[Any] = []
        standalone = True
    elif isinstance(parsed, list) and parsed:
        values = parsed
        standalone = False
    else:
        raise DevalueError("Invalid input")

    hydrated: dict[int, Any] = {}

    def hydrate(index: Any, standalone: bool = False) -> Any:
        if type(index) is not int:
            raise DevalueError("Invalid input")
        if index == UNDEFINED_INDEX:
            return UNDEFINED
        if index == NAN:
            return math.nan
        if index == POSITIVE_INFINITY:
            return math.inf
        if index == NEGATIVE_INFINITY:
            return -math.inf
        if index == NEGATIVE_ZERO:
            return -0.0
        if standalone or not 0 <= index < len(values):
            raise DevalueError("Invalid input")

        if index in hydrated:
            return hydrated[index]

        value = values[index]

        if _is_primitive(value):
            hydrated[index] = value

        elif isinstance(value, list):
            if value and isinstance(value[0], str):
                tag = value[0]
                reviver = custom.get(tag)
                if reviver is not None:
                    hydrated[index] = reviver(hydrate(_payload(value, tag)))
                    return hydrated[index]

                if tag == "Date":
                    hydrated[index] = _parse_date(value[1] if len(value) > 1 else None)
                elif tag == "Set":
                    items: set[Any] = set()
                    hydrated[index] = items
                    for n in value[1:]:
                        member = hydrate(n)
                        try:
                            items.add(member)
                        except TypeError as exc:
                            raise DevalueError("Invalid input: unhashable Set member") from exc
                elif tag == "Map" or tag == "null":
                    if len(value) % 2 == 0:
                        raise DevalueError(f"Invalid input: odd {tag} entries")
                    mapping: dict[Any, Any] = {}
                    hydrated[index] = mapping
                    for i in range(1, len(value), 2):
                        if tag == "null":
                            if not isinstance(value[i], str):
                                raise DevalueError("Invalid input: non-string key")
                            key = value[i]
                        else:
                            key = hydrate(value[i])
                        entry = hydrate(value[i + 1])
                        try:
                            mapping[key] = entry
                        except TypeError as exc:
                            raise DevalueError("Invalid input: unhashable Map key") from exc
                elif tag == "BigInt":
                    digits = _payload(value, tag)
                    if not isinstance(digits, str):
                        raise DevalueError("Invalid input: BigInt payload")
                    try:
                        hydrated[index] = int(digits)
                    except ValueError as exc:
                        raise DevalueError(f"Invalid BigInt {digits[:32]!r}") from exc
                elif tag == "Object":
                    boxed = _payload(value, tag)
                    if not _is_primitive(boxed):
                        raise DevalueError("Invalid input: Object payload")
                    hydrated[index] = boxed
                elif tag == "RegExp":
                    source = _payload(value, tag)
                    flag_text = value[2] if len(value) > 2 else ""
                    if not isinstance(source, str) or not isinstance(flag_text, str):
                        raise DevalueError("Invalid input: RegExp payload")
                    flags = 0
                    for flag in flag_text:
                        flags |= _REGEXP_FLAGS.get(flag, 0)
                    try:
                        hydrated[index] = re.compile(source, flags)
                    except re.error as exc:
                        raise DevalueError(f"Invalid RegExp {source[:32]!r}") from exc
                else:
                    raise DevalueError(f"Unknown type {tag}")
            else:
                array: list[Any] = []
                hydrated[index] = array
                for n in value:
                    array.append(UNDEFINED if n == HOLE else hydrate(n))

        elif isinstance(value, dict):
            obj = {}
            hydrated[index] = obj
            for key, n in value.items():
                obj[key] = hydrate(n)

        else:  # pragma: no cover - orjson only yields JSON types
            raise DevalueError("Invalid input")

        return hydrated[index]

    if standalone:
        return hydrate(parsed, standalone=True)
    try:
        return hydrate(0)
    except RecursionError as exc:
        raise DevalueError("Invalid input: nested too deeply") from exc
