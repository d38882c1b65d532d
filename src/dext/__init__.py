"""dext: immutable record types and small value-level helpers.

Submodules:
  record     record types (equality, hashing, rendering, with-field updates)
  let        destructuring into output slots
  conv       fixed-width integer <-> bytes
  args       annotated options class <-> argparse
  typecons   Enum-driven flag sets
"""

from .diagnostics import (
    ArgsError,
    ArityError,
    ConvError,
    DextError,
    Diagnostic,
    FieldTypeError,
    FrozenRecordError,
    InvalidFieldNameError,
    SchemaError,
)
from .conv import IntType, from_bytes, to_bytes
from .let import Slot, let, unpack
from .record import FieldSpec, Record, RecordFlag, RecordOptions, RecordType, record, record_hash, replace
from .runtime import Char
from .typecons import Params, params_for

__version__ = "0.1.0"

__all__ = [
    "ArgsError",
    "ArityError",
    "Char",
    "ConvError",
    "DextError",
    "Diagnostic",
    "FieldSpec",
    "FieldTypeError",
    "FrozenRecordError",
    "IntType",
    "InvalidFieldNameError",
    "Params",
    "Record",
    "RecordFlag",
    "RecordOptions",
    "RecordType",
    "SchemaError",
    "Slot",
    "from_bytes",
    "let",
    "params_for",
    "record",
    "record_hash",
    "replace",
    "to_bytes",
    "unpack",
]
