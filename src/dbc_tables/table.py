"""In-memory table of DBC records."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import IO, Any, Union

from dbc_tables import codec
from dbc_tables.codec import Header
from dbc_tables.errors import (
    DBCIOError,
    IndexOutOfRange,
    MissingFieldError,
    TypeMismatchError,
)
from dbc_tables.schema import Schema
from dbc_tables.string_table import StringTable
from dbc_tables.types import FieldType, FieldValue

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
ByteSource = Union[PathLike, bytes, bytearray, memoryview, IO[bytes]]
ByteSink = Union[PathLike, IO[bytes]]


class Table:
    """Mutable collection of records laid out by a schema.

    Records are kept in file order. The string block is never grown: string
    fields can only be pointed at text that already exists in it.
    """

    DEFAULT_MAGIC = b"WDBC"

    def __init__(
        self,
        schema: Schema,
        magic: bytes | str = DEFAULT_MAGIC,
        string_block: bytes = b"\x00",
    ) -> None:
        """Initialize an empty table.

        Args:
            schema: Column layout shared with the caller.
            magic: 4-character file signature written on save.
            string_block: Initial string block. The default holds only the
                empty string at offset 0.
        """
        self.schema = schema
        self.magic = codec.validate_magic(magic)
        self.string_table = StringTable(string_block)
        self.path: Path | None = None
        self._records: list[list[FieldValue]] = []

    @classmethod
    def open(
        cls,
        path: PathLike,
        schema: Schema,
        expected_magic: bytes | str | None = None,
    ) -> Table:
        """Load a DBC file into a new table."""
        table = cls(schema)
        table.load(path, expected_magic=expected_magic)
        return table

    # -- I/O -------------------------------------------------------------

    def load(self, source: ByteSource, expected_magic: bytes | str | None = None) -> Table:
        """Replace this table's contents with a decoded DBC byte stream.

        Args:
            source: A file path, the raw bytes, or a binary file object.
            expected_magic: If given, the file's magic must equal it.

        Returns:
            This table.

        Raises:
            DBCIOError: If the source cannot be read.
            FormatError: If the bytes are not a valid DBC file for the schema.
        """
        data = _read_source(source)
        loaded = codec.decode(data, self.schema, expected_magic=expected_magic)

        # Swap only once decoding succeeded
        self.magic = loaded.magic
        self.string_table = loaded.string_table
        self._records = loaded._records
        if isinstance(source, (str, os.PathLike)):
            self.path = Path(source)
        logger.debug("Loaded %d records from %s", len(self._records), self.path or "<bytes>")
        return self

    def save(self, sink: ByteSink | None = None) -> None:
        """Write the table in DBC layout.

        Args:
            sink: A file path or a writable binary file object. Defaults to
                the path the table was last loaded from or saved to.

        Raises:
            DBCIOError: If writing fails.
            ValueError: If no sink is given and the table has no path.
        """
        if sink is None:
            if self.path is None:
                raise ValueError("No path to save to; pass a path or file object")
            sink = self.path

        data = codec.encode(self)
        if isinstance(sink, (str, os.PathLike)):
            path = Path(sink)
            _write_file_atomic(path, data)
            self.path = path
        else:
            try:
                written = sink.write(data)
            except OSError as exc:
                raise DBCIOError(f"Failed to write DBC data: {exc}") from exc
            if written is not None and written != len(data):
                raise DBCIOError(f"Short write: {written} of {len(data)} bytes")
        logger.debug("Saved %d records to %s", len(self._records), self.path or "<stream>")

    def to_bytes(self) -> bytes:
        """Return the table encoded in DBC layout."""
        return codec.encode(self)

    # -- metadata --------------------------------------------------------

    @property
    def record_count(self) -> int:
        return len(self._records)

    def header(self) -> Header:
        """Return header metadata computed from the current table state."""
        return Header(
            magic=self.magic,
            record_count=len(self._records),
            field_count=self.schema.field_count,
            record_size=self.schema.record_size,
            string_block_size=self.string_table.size,
        )

    # -- mutation --------------------------------------------------------

    def create_record(self, initial_values: Mapping[str, Any] | None = None) -> int:
        """Append a record and return its index.

        Args:
            initial_values: Value for every schema field. When omitted, each
                field holds its type's zero value.

        Raises:
            UnknownFieldError: If a key is not a schema field.
            MissingFieldError: If a schema field has no value.
            TypeMismatchError: If a value cannot be coerced to its field type.
        """
        if initial_values is None:
            record = [FieldValue.from_value(f.field_type, f.field_type.zero_value) for f in self.schema]
        else:
            for name in initial_values:
                self.schema.position(name)
            missing = [
                f.name for f in self.schema if initial_values.get(f.name) is None
            ]
            if missing:
                raise MissingFieldError(missing)
            record = [
                self._make_cell(position, initial_values[f.name])
                for position, f in enumerate(self.schema)
            ]

        self._records.append(record)
        return len(self._records) - 1

    def update_field(self, index: int, field_name: str, value: Any) -> None:
        """Set one field of the record at ``index``."""
        self._check_index(index)
        position = self.schema.position(field_name)
        self._records[index][position] = self._make_cell(position, value)

    def update_fields(self, index: int, values: Mapping[str, Any]) -> None:
        """Set several fields of one record.

        Either every value is applied or, if any name or value is invalid,
        none is.
        """
        self._check_index(index)
        cells = []
        for name, value in values.items():
            position = self.schema.position(name)
            cells.append((position, self._make_cell(position, value)))
        record = self._records[index]
        for position, cell in cells:
            record[position] = cell

    def delete_record(self, index: int) -> None:
        """Remove the record at ``index``; later records move down by one.

        Strings referenced only by the removed record stay in the string block.
        """
        self._check_index(index)
        del self._records[index]
        logger.debug("Deleted record %d, %d remaining", index, len(self._records))

    # -- queries ---------------------------------------------------------

    def get_record(self, index: int) -> dict[str, Any]:
        """Return the record at ``index`` as ``{field: value}``.

        String fields are resolved to text.

        Raises:
            IndexOutOfRange: If there is no such record.
            StringResolutionError: If a string offset is invalid.
        """
        self._check_index(index)
        return self._to_dict(self._records[index])

    def get_raw_record(self, index: int) -> dict[str, Any]:
        """Return the record at ``index`` with string fields as offsets."""
        self._check_index(index)
        return {f.name: cell.value for f, cell in zip(self.schema, self._records[index])}

    def find_by(self, field_name: str, value: Any) -> list[dict[str, Any]]:
        """Return every record whose ``field_name`` equals ``value``, in table order.

        String fields compare resolved text. Numeric fields compare against
        ``value`` coerced to the column type.

        Raises:
            UnknownFieldError: If the field is not in the schema.
            TypeMismatchError: If ``value`` is not comparable with the field.
            StringResolutionError: If a string offset in the column is invalid.
        """
        return [self._to_dict(self._records[i]) for i in self.find_indices(field_name, value)]

    def find_indices(self, field_name: str, value: Any) -> list[int]:
        """Return the indices of the records ``find_by`` would return."""
        position = self.schema.position(field_name)
        field_type = self.schema.fields[position].field_type

        if field_type.is_string:
            if not isinstance(value, str):
                raise TypeMismatchError(
                    f"Expected text for string field {field_name!r}, got {type(value).__name__}"
                )
            target = value
        else:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeMismatchError(
                    f"Expected a number for {field_type.value} field {field_name!r}, "
                    f"got {type(value).__name__}"
                )
            try:
                target = field_type.coerce(value)
            except TypeMismatchError:
                # Not representable in the column, so nothing can match
                return []

        return [
            index
            for index, record in enumerate(self._records)
            if self._resolve(record[position]) == target
        ]

    # -- helpers ---------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._records):
            raise IndexOutOfRange(index, len(self._records))

    def _make_cell(self, position: int, value: Any) -> FieldValue:
        field_type = self.schema.fields[position].field_type
        if field_type is FieldType.STRING_REF and isinstance(value, str):
            value = self.string_table.offset_of(value)
        return FieldValue.from_value(field_type, value)

    def _resolve(self, cell: FieldValue) -> Any:
        if cell.field_type.is_string:
            return self.string_table.resolve(cell.raw)
        return cell.value

    def _to_dict(self, record: list[FieldValue]) -> dict[str, Any]:
        return {f.name: self._resolve(cell) for f, cell in zip(self.schema, record)}

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        for record in self._records:
            yield self._to_dict(record)

    def __repr__(self) -> str:
        return (
            f"Table(magic={self.magic!r}, records={len(self._records)}, "
            f"fields={self.schema.field_count})"
        )


def _read_source(source: ByteSource) -> bytes:
    """Read the whole of ``source`` into memory."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        try:
            with open(source, "rb") as f:
                return f.read()
        except OSError as exc:
            raise DBCIOError(f"Could not read DBC file {source}: {exc}") from exc
    try:
        data = source.read()
    except OSError as exc:
        raise DBCIOError(f"Could not read DBC data: {exc}") from exc
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"Expected a binary stream, read {type(data).__name__}")
    return bytes(data)


def _write_file_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` through a temporary file in the same directory."""
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    except OSError as exc:
        raise DBCIOError(f"Could not open {path} for writing: {exc}") from exc
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        if path.exists():
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise DBCIOError(f"Failed to write DBC file {path}: {exc}") from exc
