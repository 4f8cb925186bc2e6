"""Binary encoding and decoding of DBC files.

Layout (all integers little-endian uint32)::

    magic[4] record_count field_count record_size string_block_size
    record_count * record_size bytes of records
    string_block_size bytes of packed null-terminated strings
"""

from __future__ import annotations

import logging
import struct
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from dbc_tables.errors import FormatError
from dbc_tables.types import CELL_SIZE, FieldValue

if TYPE_CHECKING:
    from dbc_tables.schema import Schema
    from dbc_tables.table import Table

logger = logging.getLogger(__name__)

HEADER_STRUCT = struct.Struct("<4s4I")
HEADER_SIZE = HEADER_STRUCT.size  # 20 bytes


def validate_magic(magic: bytes | str) -> bytes:
    """Return ``magic`` as 4 bytes of printable ASCII.

    Raises:
        ValueError: If the magic is the wrong length or not printable ASCII.
    """
    if isinstance(magic, str):
        try:
            magic = magic.encode("ascii")
        except UnicodeEncodeError:
            raise ValueError(f"Magic must be 4 printable ASCII characters, got {magic!r}") from None
    magic = bytes(magic)
    if len(magic) != 4 or not all(0x20 <= b < 0x7F for b in magic):
        raise ValueError(f"Magic must be 4 printable ASCII characters, got {magic!r}")
    return magic


@dataclass(frozen=True)
class Header:
    """The fixed 20-byte header of a DBC file."""

    magic: bytes
    record_count: int
    field_count: int
    record_size: int
    string_block_size: int

    @classmethod
    def unpack(cls, data: bytes) -> Header:
        """Read a header from the first 20 bytes of ``data``."""
        return cls(*HEADER_STRUCT.unpack_from(data))

    def pack(self) -> bytes:
        return HEADER_STRUCT.pack(
            self.magic,
            self.record_count,
            self.field_count,
            self.record_size,
            self.string_block_size,
        )

    @property
    def records_size(self) -> int:
        """Return the size in bytes of the record block."""
        return self.record_count * self.record_size

    @property
    def file_size(self) -> int:
        """Return the total size in bytes of a file with this header."""
        return HEADER_SIZE + self.records_size + self.string_block_size

    def as_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["magic"] = self.magic.decode("ascii", errors="replace")
        return result


def _row_struct(field_count: int) -> struct.Struct:
    return struct.Struct("<" + "I" * field_count)


def decode(data: bytes, schema: Schema, expected_magic: bytes | str | None = None) -> Table:
    """Decode a complete DBC byte stream into a new Table.

    Args:
        data: The whole file contents.
        schema: Column layout of the records.
        expected_magic: If given, the file's magic must equal it.

    Returns:
        A new Table bound to ``schema``.

    Raises:
        FormatError: If the stream is malformed or does not match the schema.
    """
    from dbc_tables.table import Table

    data = bytes(data)
    if len(data) < HEADER_SIZE:
        raise FormatError(f"File too short for a DBC header: {len(data)} < {HEADER_SIZE} bytes")

    header = Header.unpack(data)
    try:
        magic = validate_magic(header.magic)
    except ValueError as exc:
        raise FormatError(f"Bad magic: {exc}") from None
    if expected_magic is not None:
        expected = validate_magic(expected_magic)
        if magic != expected:
            raise FormatError(f"Magic mismatch: expected {expected!r}, got {magic!r}")

    if header.field_count != schema.field_count:
        raise FormatError(
            f"Field count mismatch: file has {header.field_count}, schema has {schema.field_count}"
        )
    if header.record_size != CELL_SIZE * header.field_count:
        raise FormatError(
            f"Record size {header.record_size} does not match "
            f"{header.field_count} fields of {CELL_SIZE} bytes"
        )

    records_end = HEADER_SIZE + header.records_size
    if len(data) < records_end:
        raise FormatError(
            f"Truncated record block: need {header.records_size} bytes for "
            f"{header.record_count} records, have {len(data) - HEADER_SIZE}"
        )
    if len(data) < header.file_size:
        raise FormatError(
            f"Truncated string block: need {header.string_block_size} bytes, "
            f"have {len(data) - records_end}"
        )
    if len(data) > header.file_size:
        raise FormatError(f"{len(data) - header.file_size} unexpected trailing bytes after string block")

    field_types = [f.field_type for f in schema]
    if field_types:
        rows = _row_struct(len(field_types)).iter_unpack(data[HEADER_SIZE:records_end])
        records = [
            [FieldValue(field_type, raw) for field_type, raw in zip(field_types, row)]
            for row in rows
        ]
    else:
        records = [[] for _ in range(header.record_count)]

    table = Table(schema, magic=magic, string_block=data[records_end:])
    table._records = records
    logger.debug(
        "Decoded %d records of %d fields, %d byte string block",
        header.record_count,
        header.field_count,
        header.string_block_size,
    )
    return table


def encode(table: Table) -> bytes:
    """Encode a Table into the DBC byte layout.

    Record count and record size are derived from the table itself.
    """
    header = table.header()
    parts = [header.pack()]
    if header.field_count:
        row = _row_struct(header.field_count)
        parts.extend(row.pack(*(cell.raw for cell in record)) for record in table._records)
    parts.append(table.string_table.to_bytes())
    logger.debug(
        "Encoded %d records, %d bytes total", header.record_count, header.file_size
    )
    return b"".join(parts)
