"""Shared fixtures for dbc_tables tests."""

import struct

import pytest

from dbc_tables import FieldType, Schema, Table

# "abc" at offset 0, "" at offset 4, "xy" at offset 5
EXAMPLE_STRINGS = b"abc\x00\x00xy\x00"


def _pack_dbc(
    rows: list[bytes],
    string_block: bytes,
    field_count: int,
    magic: bytes = b"TEST",
    record_count: int | None = None,
    record_size: int | None = None,
    string_block_size: int | None = None,
) -> bytes:
    """Assemble a DBC file from pre-packed rows, with optional header overrides."""
    header = struct.pack(
        "<4s4I",
        magic,
        len(rows) if record_count is None else record_count,
        field_count,
        4 * field_count if record_size is None else record_size,
        len(string_block) if string_block_size is None else string_block_size,
    )
    return header + b"".join(rows) + string_block


@pytest.fixture
def pack_dbc():
    return _pack_dbc


@pytest.fixture
def item_schema() -> Schema:
    return Schema.from_pairs(
        [("id", FieldType.UINT32), ("name", FieldType.STRING_REF), ("weight", FieldType.FLOAT32)]
    )


@pytest.fixture
def example_bytes() -> bytes:
    rows = [struct.pack("<IIf", 1, 0, 2.5), struct.pack("<IIf", 2, 5, 1.0)]
    return _pack_dbc(rows, EXAMPLE_STRINGS, field_count=3)


@pytest.fixture
def example_table(item_schema, example_bytes) -> Table:
    return Table(item_schema).load(example_bytes)
