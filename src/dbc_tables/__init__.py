"""DBC Tables - schema-driven reader/writer for DBC binary table files."""

from dbc_tables.codec import Header, decode, encode
from dbc_tables.errors import (
    DBCError,
    DBCIOError,
    FormatError,
    IndexOutOfRange,
    MissingFieldError,
    StringResolutionError,
    TypeMismatchError,
    UnknownFieldError,
)
from dbc_tables.parsing import SchemaParser
from dbc_tables.schema import Schema
from dbc_tables.string_table import StringTable
from dbc_tables.table import Table
from dbc_tables.types import FieldDefinition, FieldType, FieldValue

__all__ = [
    # Main API
    "Schema",
    "SchemaParser",
    "Table",
    # Codec
    "Header",
    "decode",
    "encode",
    "StringTable",
    # Field definitions
    "FieldDefinition",
    "FieldType",
    "FieldValue",
    # Errors
    "DBCError",
    "DBCIOError",
    "FormatError",
    "IndexOutOfRange",
    "MissingFieldError",
    "StringResolutionError",
    "TypeMismatchError",
    "UnknownFieldError",
]

__version__ = "0.1.0"
