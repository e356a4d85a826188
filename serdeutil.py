"""
Format wrappers: JSON (pretty and terse) and the compact binary format.

    to_json / to_json_terse / from_json     JSON text
    to_binary / from_binary                 bytes, shaped by a binformat schema
    serialized_size_bytes                   exact binary length, nothing kept

Maps with composite keys and multimaps go through the pair-list helpers in
adapters.py (or the BTreeMap/HashMap/MultiMap schemas) first.
"""

import argparse
import functools
import io
import json
import logging
import sys
from pathlib import Path

import construct as c
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_jsonable_python

from serde_errors import DecodeError, EncodeError, SerdeError

log = logging.getLogger(__name__)

JSON_INDENT = 2


## JSON

def _dumps(value, **kwargs):
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False,
                          default=to_jsonable_python, **kwargs)
    except TypeError as e:
        if "keys must be" in str(e):
            raise EncodeError(
                f"{e}; serialize maps with composite keys via serialize_btreemap"
            ) from e
        raise EncodeError(f"cannot encode {type(value).__name__} as JSON: {e}") from e
    except (ValueError, PydanticSerializationError) as e:
        raise EncodeError(f"cannot encode {type(value).__name__} as JSON: {e}") from e


def to_json(value):
    """Stringifies a value to indented, human-readable JSON."""
    return _dumps(value, indent=JSON_INDENT)


def to_json_terse(value):
    """Stringifies a value to single-line JSON without extra whitespace."""
    return _dumps(value, separators=(",", ":"))


@functools.lru_cache(maxsize=None)
def _type_adapter(shape):
    return TypeAdapter(shape)


def _reject_constant(name):
    raise DecodeError(f"{name} is not valid JSON")


def from_json(text, shape=None):
    """Parses JSON produced by either to_json or to_json_terse.

    JSON has no tuples and only string object keys, so pair lists come back as
    lists of lists. Pass ``shape`` (anything pydantic's TypeAdapter accepts, e.g.
    ``list[tuple[tuple[int, int], str]]``) to get the original types back and to
    reject input of the wrong shape. Shapes are checked in strict mode: a string
    never stands in for a number.
    """
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise DecodeError(
            f"malformed JSON at line {e.lineno} column {e.colno}: {e.msg}", position=e.pos
        ) from e
    if shape is None:
        return value
    try:
        return _type_adapter(shape).validate_json(text, strict=True)
    except ValidationError as e:
        err = e.errors()[0]
        where = ".".join(str(part) for part in err["loc"]) or "<root>"
        raise DecodeError(f"JSON does not match {shape!r} at {where}: {err['msg']}") from e


## Binary

class _CountingSink:
    """Write-only stream that keeps a byte count and drops the data."""

    def __init__(self):
        self.count = 0

    def write(self, data):
        self.count += len(data)
        return len(data)

    def tell(self):
        return self.count


def _build(value, schema, stream):
    try:
        schema.build_stream(value, stream)
    except SerdeError:
        raise
    except (c.ConstructError, TypeError, ValueError, KeyError, AttributeError) as e:
        raise EncodeError(f"cannot encode {type(value).__name__}: {e}") from e


def to_binary(value, schema):
    """Serializes a value to the compact binary format described by ``schema``."""
    stream = io.BytesIO()
    _build(value, schema, stream)
    data = stream.getvalue()
    log.debug("encoded %s to %d bytes", type(value).__name__, len(data))
    return data


def from_binary(data, schema):
    """Deserializes a value from the compact binary format.

    Every byte must be consumed; leftovers mean the schema doesn't match.
    """
    stream = io.BytesIO(data)
    try:
        value = schema.parse_stream(stream)
    except SerdeError as e:
        if e.position is None:
            e.position = stream.tell()
        raise
    except (c.ConstructError, ValueError) as e:
        # ValueError covers bad UTF-8 in strings
        position = stream.tell()
        raise DecodeError(f"corrupt binary input near byte {position}: {e}", position=position) from e
    position = stream.tell()
    if position != len(data):
        raise DecodeError(
            f"{len(data) - position} trailing byte(s) after offset {position}", position=position
        )
    log.debug("decoded %d bytes", len(data))
    return value


def serialized_size_bytes(value, schema):
    """The number of bytes ``to_binary(value, schema)`` would produce."""
    sink = _CountingSink()
    _build(value, schema, sink)
    return sink.count


## Command line

def main(argv=None):
    parser = argparse.ArgumentParser(description="Re-encode a JSON file as pretty or terse JSON.")
    parser.add_argument('file')
    parser.add_argument('--terse', action='store_true', help="single-line output")
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        value = from_json(Path(args.file).read_text(encoding="utf-8"))
    except DecodeError as e:
        print(f"{args.file}: {e}", file=sys.stderr)
        return 1

    print(to_json_terse(value) if args.terse else to_json(value))
    return 0


if __name__ == "__main__":
    sys.exit(main())
