"""Tests for devalue structured-value serialization."""

import copy
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from remoteargs.core.devalue import UNDEFINED, DevalueError, parse, stringify, unflatten


@dataclass
class Vec:
    x: int
    y: int


REDUCERS = {"Vec": lambda value: isinstance(value, Vec) and [value.x, value.y]}
REVIVERS = {"Vec": lambda data: Vec(*data)}


class Opaque:
    pass


class TestStringifyFormat:
    """Test the flattened wire format."""

    def test_object_with_array(self) -> None:
        """Containers hold indexes into the flat array."""
        assert stringify({"a": [1, 2], "b": None}) == '[{"a":1,"b":4},[2,3],1,2,null]'

    def test_primitives_are_deduplicated(self) -> None:
        """Equal primitives share one slot."""
        assert stringify(["x", "x"]) == '[[1,1],"x"]'

    def test_bool_and_int_are_distinct(self) -> None:
        """True is not merged with 1."""
        assert stringify([1, True]) == "[[1,2],1,true]"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (UNDEFINED, "-1"),
            (math.nan, "-3"),
            (math.inf, "-4"),
            (-math.inf, "-5"),
            (-0.0, "-6"),
        ],
    )
    def test_special_roots(self, value: object, expected: str) -> None:
        """Special scalar roots serialize to bare negative indexes."""
        assert stringify(value) == expected

    def test_special_values_inside_containers(self) -> None:
        """Special values are referenced by negative index."""
        assert stringify([UNDEFINED, math.nan]) == "[[-1,-3]]"

    def test_float(self) -> None:
        """Finite floats are plain JSON numbers."""
        assert stringify(1.5) == "[1.5]"

    def test_set_is_sorted(self) -> None:
        """Sets of orderable items are written in sorted order."""
        assert stringify({3, 1, 2}) == '[["Set",1,2,3],1,2,3]'

    def test_non_string_keys_use_map(self) -> None:
        """Dicts with non-string keys become Map entries."""
        assert stringify({1: "a"}) == '[["Map",1,2],1,"a"]'

    def test_date(self) -> None:
        """Aware datetimes are written as ISO-8601 UTC with milliseconds."""
        when = datetime(2024, 1, 15, 10, 30, 0, 123000, tzinfo=timezone.utc)
        assert stringify(when) == '[["Date","2024-01-15T10:30:00.123Z"]]'

    def test_offset_date_is_normalized(self) -> None:
        """Datetimes with an offset are converted to UTC."""
        when = datetime(2024, 1, 1, 1, 0, tzinfo=timezone(timedelta(hours=1)))
        assert stringify(when) == '[["Date","2024-01-01T00:00:00.000Z"]]'

    def test_big_int(self) -> None:
        """Integers beyond the JSON-safe range become BigInt."""
        assert stringify(2**64) == '[["BigInt","18446744073709551616"]]'
        assert stringify(2**53 - 1) == "[9007199254740991]"

    def test_cycle(self) -> None:
        """Self references point back at their own slot."""
        value: dict[str, object] = {}
        value["self"] = value
        assert stringify(value) == '[{"self":0}]'

    def test_reducer(self) -> None:
        """Reduced values are tagged with the reducer's key."""
        assert stringify(Vec(1, 2), REDUCERS) == '[["Vec",1],[2,3],1,2]'

    def test_deterministic(self) -> None:
        """Identical input gives identical output."""
        value = {"tags": {"b", "a"}, "n": [1, 2.5, None]}
        assert stringify(value) == stringify(value)

    def test_mixed_set_order_is_fixed(self) -> None:
        """Sets of unorderable members are written by type name, then repr."""
        assert stringify({"a", 1, None}) == '[["Set",1,2,3],null,1,"a"]'
        assert stringify({1, "a"}) == stringify({"a", 1})


class TestStringifyErrors:
    """Test unserializable values."""

    def test_function(self) -> None:
        """Functions cannot be stringified."""
        with pytest.raises(DevalueError, match="Cannot stringify a function"):
            stringify({"fn": len})

    def test_lambda_path(self) -> None:
        """The error path points at the offending value."""
        with pytest.raises(DevalueError) as exc_info:
            stringify({"handlers": [1, lambda: None]})
        assert exc_info.value.path == ".handlers[1]"

    def test_arbitrary_object(self) -> None:
        """Unregistered objects are rejected with their location."""
        with pytest.raises(DevalueError) as exc_info:
            stringify({"user": {"tags": [1, Opaque()]}})
        assert exc_info.value.message == "Cannot stringify arbitrary non-POJOs"
        assert exc_info.value.path == ".user.tags[1]"

    def test_non_identifier_key_path(self) -> None:
        """Keys that are not identifiers are quoted in the path."""
        with pytest.raises(DevalueError) as exc_info:
            stringify({"a b": Opaque()})
        assert exc_info.value.path == '["a b"]'

    def test_is_value_error(self) -> None:
        """DevalueError is a ValueError."""
        assert issubclass(DevalueError, ValueError)

    def test_naive_datetime(self) -> None:
        """Naive datetimes cannot come back equal, so they are rejected."""
        with pytest.raises(DevalueError, match="naive datetime") as exc_info:
            stringify({"when": datetime(2024, 1, 1)})
        assert exc_info.value.path == ".when"

    def test_sub_millisecond_datetime(self) -> None:
        """Microseconds below millisecond precision are rejected."""
        with pytest.raises(DevalueError, match="sub-millisecond") as exc_info:
            stringify([datetime(2024, 1, 1, microsecond=123456, tzinfo=timezone.utc)])
        assert exc_info.value.path == "[0]"

    @pytest.mark.parametrize(
        ("value", "path"),
        [
            ({(1, 2)}, ".add(...)"),
            ({frozenset({1}): "x"}, ".get(...)"),
            ({"m": {(1, 2): "x"}}, ".m.get(...)"),
        ],
    )
    def test_unhashable_after_parse(self, value: object, path: str) -> None:
        """Tuples and frozensets cannot be Set members or Map keys."""
        with pytest.raises(DevalueError, match="Set member or Map key") as exc_info:
            stringify(value)
        assert exc_info.value.path == path

    def test_shared_tuple_as_key(self) -> None:
        """A tuple seen earlier as a value is still rejected as a key."""
        pair = (1, 2)
        with pytest.raises(DevalueError, match="Set member or Map key"):
            stringify([pair, {pair: 1}])

    def test_reduced_tuple_as_key(self) -> None:
        """A tuple claimed by a reducer may be a key."""
        reducers = {"Pair": lambda value: isinstance(value, tuple) and list(value)}
        revivers = {"Pair": tuple}
        value = {(1, 2): "x"}
        assert parse(stringify(value, reducers), revivers) == value

    def test_deep_nesting(self) -> None:
        """Structures too deep to walk are rejected."""
        value: list[object] = []
        for _ in range(5_000):
            value = [value]
        with pytest.raises(DevalueError, match="nested too deeply"):
            stringify(value)


class TestRoundTrip:
    """Test stringify followed by parse."""

    @pytest.mark.parametrize(
        "value",
        [
            None,
            True,
            0,
            -17,
            3.25,
            "",
            "héllo ✓",
            [],
            {},
            [1, [2, [3]]],
            {"a": {"b": {"c": "d"}}},
            {1, 2, 3},
            {1: "one", 2: "two"},
            {"empty": set()},
            2**70,
            -(2**70),
            datetime(2024, 6, 1, 12, 0, 0, 250000, tzinfo=timezone.utc),
            datetime(2024, 6, 1, 14, 0, 0, 5000, tzinfo=timezone(timedelta(hours=2))),
        ],
    )
    def test_values(self, value: object) -> None:
        """Supported values survive the round trip."""
        assert parse(stringify(value)) == value

    def test_special_floats(self) -> None:
        """NaN, infinities and negative zero survive the round trip."""
        result = parse(stringify([math.nan, math.inf, -math.inf, -0.0]))
        assert math.isnan(result[0])
        assert result[1] == math.inf
        assert result[2] == -math.inf
        assert result[3] == 0 and math.copysign(1.0, result[3]) < 0

    def test_undefined(self) -> None:
        """UNDEFINED survives at the root and inside containers."""
        assert parse(stringify(UNDEFINED)) is UNDEFINED
        assert parse(stringify({"a": UNDEFINED}))["a"] is UNDEFINED

    def test_tuple_becomes_list(self) -> None:
        """Tuples are written as arrays and read back as lists."""
        assert parse(stringify((1, 2))) == [1, 2]

    def test_cycle(self) -> None:
        """Cyclic structures are rebuilt with the same shape."""
        value: dict[str, object] = {"name": "root"}
        value["self"] = value
        result = parse(stringify(value))
        assert result["name"] == "root"
        assert result["self"] is result

    def test_shared_reference(self) -> None:
        """Shared containers stay shared."""
        shared = [1]
        assert stringify([shared, shared]) == "[[1,1],[2],1]"
        result = parse(stringify([shared, shared]))
        assert result[0] is result[1]

    def test_custom_type(self) -> None:
        """Reducers and revivers round-trip custom types."""
        value = {"points": [Vec(1, 2), Vec(3, 4)], "origin": Vec(0, 0)}
        assert parse(stringify(value, REDUCERS), REVIVERS) == value


class TestParse:
    """Test parsing payloads, including ones from other producers."""

    def test_js_payload(self) -> None:
        """A payload written by the JavaScript devalue is understood."""
        payload = '[{"date":1,"n":-6,"s":2},["Date","2024-01-01T00:00:00.000Z"],["Set",3],"a"]'
        result = parse(payload)
        assert result["date"] == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert math.copysign(1.0, result["n"]) < 0
        assert result["s"] == {"a"}

    def test_hole(self) -> None:
        """Array holes become UNDEFINED."""
        assert unflatten([[-2, 1], "x"]) == [UNDEFINED, "x"]

    def test_regexp(self) -> None:
        """RegExp payloads compile with matching flags."""
        pattern = parse('[["RegExp","ab+c","i"]]')
        assert isinstance(pattern, re.Pattern)
        assert pattern.flags & re.IGNORECASE
        assert pattern.match("ABBC")

    def test_null_prototype_object(self) -> None:
        """Null-prototype objects become dicts."""
        assert parse('[["null","a",1],2]') == {"a": 2}

    def test_boxed_primitive(self) -> None:
        """Boxed primitives become plain values."""
        assert parse('[["Object","x"]]') == "x"

    def test_primitive_root(self) -> None:
        """A lone primitive slot is the root value."""
        assert parse("[5]") == 5

    @pytest.mark.parametrize("payload", ["[]", '"x"', "{}", "1", "[[3]]", '[["x"]]', "[[1.5]]"])
    def test_invalid_input(self, payload: str) -> None:
        """Malformed payloads are rejected."""
        with pytest.raises(DevalueError):
            parse(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            '[["BigInt"]]',
            '[["BigInt","x"]]',
            '[["BigInt",1]]',
            '[["Object"]]',
            '[["Object",[1]]]',
            '[["RegExp"]]',
            '[["RegExp","("]]',
            '[["RegExp","a",1]]',
            '[["Set",1],[]]',
            '[["Map",1,2],[],0]',
            '[["Map",1],0]',
            '[["null",[],1],2]',
        ],
    )
    def test_tampered_payload(self, payload: str) -> None:
        """Structurally broken payloads fail with DevalueError only."""
        with pytest.raises(DevalueError):
            parse(payload)

    def test_deep_chain(self) -> None:
        """Reference chains too deep to rebuild are rejected."""
        payload = "[" + ",".join(f"[{i}]" for i in range(1, 5000)) + ",0]"
        with pytest.raises(DevalueError, match="nested too deeply"):
            parse(payload)

    def test_unknown_type(self) -> None:
        """Unknown tags without a reviver are rejected."""
        with pytest.raises(DevalueError, match="Unknown type Nope"):
            parse('[["Nope",1]]')

    def test_invalid_date(self) -> None:
        """An empty Date (JavaScript's Invalid Date) is rejected."""
        with pytest.raises(DevalueError, match="Invalid date"):
            parse('[["Date",""]]')

    def test_reviver_takes_precedence(self) -> None:
        """Revivers override built-in tags."""
        assert parse('[["Date",1],"raw"]', {"Date": str.upper}) == "RAW"

    def test_invalid_json(self) -> None:
        """Invalid JSON raises a ValueError from the JSON layer."""
        with pytest.raises(ValueError):
            parse("[1,")


class TestUndefined:
    """Test the UNDEFINED sentinel."""

    def test_falsy(self) -> None:
        """UNDEFINED is falsy but not None."""
        assert not UNDEFINED
        assert UNDEFINED is not None

    def test_singleton(self) -> None:
        """Copies and new instances are the same object."""
        assert copy.deepcopy(UNDEFINED) is UNDEFINED
        assert type(UNDEFINED)() is UNDEFINED

    def test_repr(self) -> None:
        """The repr is readable."""
        assert repr(UNDEFINED) == "UNDEFINED"
