import dataclasses
import enum
import logging
import operator

import construct as c

from serde_errors import DecodeError, DuplicateKeyError, EncodeError, UsizeRangeError

log = logging.getLogger(__name__)

USIZE_MAX = 2**32 - 1

_by_key = operator.itemgetter(0)


## Narrow integers

def serialize_usize(value):
    """Narrows an index-like integer to the u32 range. Out of range raises, never truncates."""
    if isinstance(value, bool):
        raise UsizeRangeError(value)
    try:
        value = operator.index(value)
    except TypeError:
        raise UsizeRangeError(value) from None
    if not 0 <= value <= USIZE_MAX:
        raise UsizeRangeError(value)
    return value


def deserialize_usize(value):
    return operator.index(value)


## Pair lists

def _sorted_items(mapping):
    try:
        return sorted(mapping.items(), key=_by_key)
    except TypeError as e:
        raise EncodeError(f"map keys have no natural order: {e}") from e


def _unpack(pair, index):
    try:
        key, value = pair
    except (TypeError, ValueError):
        raise DecodeError(f"pair {index} is not a (key, value) pair: {pair!r}") from None
    return key, value


def _collect_unique(pairs, strict):
    out = {}
    for index, pair in enumerate(pairs):
        key, value = _unpack(pair, index)
        try:
            seen = key in out
        except TypeError:
            # JSON hands composite keys back as lists
            raise DecodeError(
                f"pair {index} has unhashable key {key!r}; "
                "decode the JSON with a shape such as list[tuple[tuple[int, int], ...]]"
            ) from None
        if seen:
            if strict:
                raise DuplicateKeyError(key, index)
            log.debug("duplicate key %r at pair %d, keeping the later value", key, index)
        out[key] = value
    return out


def serialize_btreemap(mapping):
    """Serializes a map as a list of (key, value) tuples in key order.

    Needed when the keys are composite (tuples, frozen dataclasses), which JSON
    objects can't have as keys.
    """
    return _sorted_items(mapping)


def deserialize_btreemap(pairs, strict=True):
    """Inverse of serialize_btreemap. The result iterates in key order.

    A repeated key raises DuplicateKeyError; with ``strict=False`` the last
    occurrence wins instead.
    """
    out = _collect_unique(pairs, strict)
    try:
        return dict(sorted(out.items(), key=_by_key))
    except TypeError as e:
        raise DecodeError(f"map keys have no natural order: {e}") from e


def serialize_hashmap(mapping):
    """Serializes a map as a list of tuples, first sorting by the keys.

    Equal maps give equal output whatever order they were filled in.
    """
    return _sorted_items(mapping)


def deserialize_hashmap(pairs, strict=True):
    """Rebuilds a map from a list of tuples, keeping the order given.

    Duplicate keys follow the same policy as deserialize_btreemap.
    """
    return _collect_unique(pairs, strict)


def serialize_multimap(multimap):
    """Flattens key -> values into one (key, value) pair per occurrence.

    Pairs are ordered by key, then by each key's own value order. Set-valued
    entries are sorted, since sets have no order of their own.
    """
    pairs = []
    for key, values in _sorted_items(multimap):
        if isinstance(values, (set, frozenset)):
            try:
                values = sorted(values)
            except TypeError as e:
                raise EncodeError(f"values for key {key!r} have no natural order: {e}") from e
        pairs.extend((key, value) for value in values)
    return pairs


def deserialize_multimap(pairs):
    """Groups (key, value) pairs back into key -> list of values.

    Keys keep first-seen order, values keep their order within a key.
    """
    out = {}
    for index, pair in enumerate(pairs):
        key, value = _unpack(pair, index)
        try:
            out.setdefault(key, []).append(value)
        except TypeError:
            raise DecodeError(f"pair {index} has unhashable key {key!r}") from None
    return out


## construct adapters

class UsizeAdapter(c.Adapter):
    def _decode(self, obj, context, path):
        return deserialize_usize(obj)

    def _encode(self, obj, context, path):
        return serialize_usize(obj)


class BoolAdapter(c.Adapter):
    def _decode(self, obj, context, path):
        if obj not in (0, 1):
            raise DecodeError(f"invalid bool byte {obj:#04x}", path=path)
        return obj == 1

    def _encode(self, obj, context, path):
        if type(obj) != bool:
            raise EncodeError(f"expected bool, got {type(obj).__name__}", path=path)
        return int(obj)


class ListAdapter(c.Adapter):
    def _decode(self, obj, context, path):
        return list(obj)

    def _encode(self, obj, context, path):
        return list(obj)


class TupleAdapter(c.Adapter):
    def _decode(self, obj, context, path):
        return tuple(obj)

    def _encode(self, obj, context, path):
        arity = len(self.subcon.subcons)
        obj = list(obj)
        if len(obj) != arity:
            raise EncodeError(f"expected a {arity}-tuple, got {len(obj)} items", path=path)
        return obj


class OptionAdapter(c.Adapter):
    def _decode(self, obj, context, path):
        if obj.tag not in (0, 1):
            raise DecodeError(f"invalid option tag {obj.tag}", path=path)
        return obj.value

    def _encode(self, obj, context, path):
        if obj is None:
            return dict(tag=0, value=None)
        return dict(tag=1, value=obj)


class RecordAdapter(c.Adapter):
    """Named fields back to back; decodes to a plain dict."""

    def _decode(self, obj, context, path):
        return {sc.name: obj[sc.name] for sc in self.subcon.subcons}

    def _encode(self, obj, context, path):
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            obj = {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
        names = [sc.name for sc in self.subcon.subcons]
        missing = [n for n in names if n not in obj]
        if missing:
            raise EncodeError(f"missing field(s) {', '.join(missing)}", path=path)
        extra = [k for k in obj if k not in names]
        if extra:
            raise EncodeError(f"unknown field(s) {', '.join(map(str, extra))}", path=path)
        return {n: obj[n] for n in names}


class VariantAdapter(c.Adapter):
    """Unit enum variant stored as its u32 index."""

    def __init__(self, subcon, names):
        super().__init__(subcon)
        self.names = tuple(names)

    def _decode(self, obj, context, path):
        if obj >= len(self.names):
            raise DecodeError(f"unknown variant index {obj}", path=path)
        return self.names[obj]

    def _encode(self, obj, context, path):
        if isinstance(obj, enum.Enum):
            obj = obj.name
        try:
            return self.names.index(obj)
        except ValueError:
            raise EncodeError(f"unknown variant {obj!r}", path=path) from None


class BTreeMapAdapter(c.Adapter):
    def __init__(self, subcon, strict=True):
        super().__init__(subcon)
        self.strict = strict

    def _decode(self, obj, context, path):
        return deserialize_btreemap(obj, strict=self.strict)

    def _encode(self, obj, context, path):
        return serialize_btreemap(obj)


class HashMapAdapter(BTreeMapAdapter):
    def _decode(self, obj, context, path):
        return deserialize_hashmap(obj, strict=self.strict)

    def _encode(self, obj, context, path):
        return serialize_hashmap(obj)


class MultiMapAdapter(c.Adapter):
    def _decode(self, obj, context, path):
        return deserialize_multimap(obj)

    def _encode(self, obj, context, path):
        return serialize_multimap(obj)
