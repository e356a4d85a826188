"""
Tests for the JSON wrappers and the command-line entry point in serdeutil.py.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional

import pytest

from adapters import (
    deserialize_btreemap,
    deserialize_hashmap,
    deserialize_multimap,
    serialize_btreemap,
    serialize_hashmap,
    serialize_multimap,
)
from serde_errors import DecodeError, EncodeError
from serdeutil import from_json, main, to_json, to_json_terse


@dataclass(frozen=True, order=True)
class RoadID:
    i1: int
    i2: int


@dataclass
class Intersection:
    x: float
    y: float
    label: Optional[str] = None


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def document():
    return {
        "name": "montlake",
        "size": [3, 4.5],
        "flags": {"dirty": False, "id": None},
        "notes": ["ü", ""],
    }


# ---------------------------------------------------------------------------
# TestJsonFormats
# ---------------------------------------------------------------------------

class TestJsonFormats:

    def test_pretty_is_indented(self, document):
        text = to_json(document)
        assert "\n" in text
        assert '\n  "name": "montlake"' in text

    def test_terse_is_one_line(self, document):
        text = to_json_terse(document)
        assert "\n" not in text
        assert text.startswith('{"name":"montlake","size":[3,4.5]')

    def test_round_trip(self, document):
        assert from_json(to_json(document)) == document
        assert from_json(to_json_terse(document)) == document

    def test_pretty_and_terse_decode_equal(self, document):
        assert from_json(to_json(document)) == from_json(to_json_terse(document))

    def test_non_ascii_kept(self):
        assert to_json_terse("grüße") == '"grüße"'

    def test_deterministic(self, document):
        assert to_json(document) == to_json(dict(document))

    def test_dataclass_values(self):
        text = to_json_terse(Intersection(1.0, 2.5))
        assert json.loads(text) == {"x": 1.0, "y": 2.5, "label": None}

    def test_composite_keys_rejected(self):
        with pytest.raises(EncodeError, match="serialize_btreemap"):
            to_json({(0, 1): "road"})

    def test_nan_rejected(self):
        with pytest.raises(EncodeError):
            to_json_terse(float("nan"))

    def test_unknown_object_rejected(self):
        with pytest.raises(EncodeError):
            to_json(object())


# ---------------------------------------------------------------------------
# TestFromJson
# ---------------------------------------------------------------------------

class TestFromJson:

    def test_malformed(self):
        with pytest.raises(DecodeError, match="line 1") as excinfo:
            from_json('{"a": 1')
        assert excinfo.value.position is not None

    def test_empty_text(self):
        with pytest.raises(DecodeError):
            from_json("")

    def test_shape_coerces_tuples(self):
        assert from_json("[[1, 2], [3, 4]]", shape=list[tuple[int, int]]) == [(1, 2), (3, 4)]

    def test_shape_mismatch_names_location(self):
        with pytest.raises(DecodeError, match=r"1\.0"):
            from_json('[[1, 2], ["x", 4]]', shape=list[tuple[int, int]])

    def test_shape_is_strict(self):
        with pytest.raises(DecodeError, match=r"0\.0"):
            from_json('[["1", 2]]', shape=list[tuple[int, int]])

    @pytest.mark.parametrize("text", ["NaN", "[1, Infinity]", "-Infinity"])
    def test_non_finite_constants_rejected(self, text):
        with pytest.raises(DecodeError):
            from_json(text)
        with pytest.raises(DecodeError):
            from_json(text, shape=list[float])

    def test_shape_dataclass(self):
        value = from_json('{"x": 1.5, "y": 2}', shape=Intersection)
        assert value == Intersection(1.5, 2.0)


# ---------------------------------------------------------------------------
# TestAdaptersThroughJson
# ---------------------------------------------------------------------------

class TestAdaptersThroughJson:
    """Pair lists survive JSON and rebuild the original containers."""

    def test_tuple_keyed_map(self):
        roads = {(3, 1): "Main St", (0, 2): "Elm St"}
        shape = list[tuple[tuple[int, int], str]]
        for encode in (to_json, to_json_terse):
            pairs = from_json(encode(serialize_btreemap(roads)), shape=shape)
            assert deserialize_btreemap(pairs) == roads

    def test_tuple_keys_need_a_shape(self):
        text = to_json(serialize_btreemap({(0, 1): "x"}))
        with pytest.raises(DecodeError):
            deserialize_btreemap(from_json(text))

    def test_dataclass_keyed_map(self):
        m = {RoadID(1, 2): Intersection(0.0, 1.0, "a"), RoadID(0, 5): Intersection(2.0, 3.0)}
        text = to_json(serialize_btreemap(m))
        pairs = from_json(text, shape=list[tuple[RoadID, Intersection]])
        assert deserialize_btreemap(pairs) == m

    def test_hashmap_text_is_deterministic(self):
        m1 = {"b": 1, "a": 2}
        m2 = {"a": 2, "b": 1}
        assert to_json(serialize_hashmap(m1)) == to_json(serialize_hashmap(m2))

    def test_hashmap_duplicate_in_text(self):
        pairs = from_json('[["a", 1], ["a", 2]]', shape=list[tuple[str, int]])
        with pytest.raises(DecodeError):
            deserialize_hashmap(pairs)

    def test_multimap(self):
        mm = {"a": [1, 2], "b": [3]}
        pairs = from_json(to_json_terse(serialize_multimap(mm)))
        assert len(pairs) == 3
        assert deserialize_multimap(pairs) == mm


# ---------------------------------------------------------------------------
# TestMain
# ---------------------------------------------------------------------------

class TestMain:

    def test_pretty(self, tmp_path, capsys, document):
        path = tmp_path / "doc.json"
        path.write_text(to_json_terse(document), encoding="utf-8")
        assert main([str(path)]) == 0
        assert capsys.readouterr().out == to_json(document) + "\n"

    def test_terse(self, tmp_path, capsys, document):
        path = tmp_path / "doc.json"
        path.write_text(to_json(document), encoding="utf-8")
        assert main([str(path), "--terse"]) == 0
        assert capsys.readouterr().out == to_json_terse(document) + "\n"

    def test_malformed(self, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2", encoding="utf-8")
        assert main([str(path)]) == 1
        assert "bad.json" in capsys.readouterr().err
