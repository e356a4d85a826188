"""
Compact binary format, bincode style.

Little-endian fixed-width integers and floats, u64 length prefixes for strings,
byte strings and sequences, no type tags. The reader must know the shape, so
every value is parsed and built through one of the schemas below.
"""

import construct as c

from adapters import (
    BoolAdapter,
    BTreeMapAdapter,
    HashMapAdapter,
    ListAdapter,
    MultiMapAdapter,
    OptionAdapter,
    RecordAdapter,
    TupleAdapter,
    UsizeAdapter,
    VariantAdapter,
)

LENGTH_PREFIX = c.Int64ul

## Primitives
U8 = c.Int8ul
U16 = c.Int16ul
U32 = c.Int32ul
U64 = c.Int64ul
I8 = c.Int8sl
I16 = c.Int16sl
I32 = c.Int32sl
I64 = c.Int64sl
F32 = c.Float32l
F64 = c.Float64l

Bool = BoolAdapter(c.Int8ul)
Str = c.PascalString(LENGTH_PREFIX, "utf8")
Bytes = c.Prefixed(LENGTH_PREFIX, c.GreedyBytes)

# Index-sized value kept to 4 bytes on the wire
Usize = UsizeAdapter(c.Int32ul)


## Composites

def Vec(subcon):
    return ListAdapter(c.PrefixedArray(LENGTH_PREFIX, subcon))


def Option(subcon):
    return OptionAdapter(c.Struct(
        "tag" / c.Int8ul,
        "value" / c.If(c.this.tag == 1, subcon),
    ))


def Tuple(*subcons):
    return TupleAdapter(c.Sequence(*subcons))


def Record(**fields):
    """Struct with named fields, encoded in declaration order."""
    return RecordAdapter(c.Struct(*(name / subcon for name, subcon in fields.items())))


def Variant(*names):
    return VariantAdapter(c.Int32ul, names)


## Maps, all carried as a list of (key, value) pairs

def BTreeMap(key, value, strict=True):
    return BTreeMapAdapter(Vec(Tuple(key, value)), strict=strict)


def HashMap(key, value, strict=True):
    return HashMapAdapter(Vec(Tuple(key, value)), strict=strict)


def MultiMap(key, value):
    return MultiMapAdapter(Vec(Tuple(key, value)))
