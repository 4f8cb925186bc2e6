"""Field type definitions for DBC records."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any

from dbc_tables.errors import TypeMismatchError

# Every DBC cell is one little-endian 32-bit word
CELL_SIZE = 4

_CELL = struct.Struct("<I")

UINT32_MAX = 0xFFFFFFFF
INT32_MIN = -(1 << 31)
INT32_MAX = (1 << 31) - 1


class FieldType(Enum):
    """Cell encodings supported by the DBC format."""

    UINT32 = "uint32"
    INT32 = "int32"
    FLOAT32 = "float32"
    STRING_REF = "string"

    @property
    def size_bytes(self) -> int:
        """Return the on-disk size of a cell of this type."""
        return CELL_SIZE

    @property
    def struct_format(self) -> str:
        """Return the struct format used to (un)pack one cell."""
        formats = {
            FieldType.UINT32: "<I",
            FieldType.INT32: "<i",
            FieldType.FLOAT32: "<f",
            FieldType.STRING_REF: "<I",
        }
        return formats[self]

    @property
    def zero_value(self) -> Any:
        """Return the value a freshly created cell holds."""
        return 0.0 if self is FieldType.FLOAT32 else 0

    @property
    def is_string(self) -> bool:
        return self is FieldType.STRING_REF

    def coerce(self, value: Any) -> Any:
        """Coerce a caller value to this type's Python representation.

        STRING_REF values are offsets here; resolving text to an offset
        needs the string block and is done by the table.

        Raises:
            TypeMismatchError: If the value cannot be represented.
        """
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeMismatchError(
                f"Expected a number for {self.value} field, got {type(value).__name__}"
            )

        if self is FieldType.FLOAT32:
            try:
                return struct.unpack("<f", struct.pack("<f", value))[0]
            except (OverflowError, struct.error) as exc:
                raise TypeMismatchError(f"Value {value!r} does not fit in float32") from exc

        if isinstance(value, float):
            if not math.isfinite(value) or not value.is_integer():
                raise TypeMismatchError(f"Expected an integer for {self.value} field, got {value!r}")
            value = int(value)

        if self is FieldType.INT32:
            low, high = INT32_MIN, INT32_MAX
        else:
            low, high = 0, UINT32_MAX
        if not low <= value <= high:
            raise TypeMismatchError(
                f"Value {value} out of range for {self.value} field [{low}, {high}]"
            )
        return value

    def to_raw(self, value: Any) -> int:
        """Return the uint32 bit pattern of an already coerced value."""
        if self in (FieldType.UINT32, FieldType.STRING_REF):
            return value
        return _CELL.unpack(struct.pack(self.struct_format, value))[0]

    def from_raw(self, raw: int) -> Any:
        """Reinterpret a uint32 bit pattern as a value of this type."""
        if self in (FieldType.UINT32, FieldType.STRING_REF):
            return raw
        return struct.unpack(self.struct_format, _CELL.pack(raw))[0]


# Mapping from type name strings (including aliases) to FieldType values
FIELD_TYPE_NAMES: dict[str, FieldType] = {ft.value: ft for ft in FieldType}
FIELD_TYPE_NAMES.update(
    {
        "float": FieldType.FLOAT32,
        "stringref": FieldType.STRING_REF,
    }
)


def field_type_from_name(name: str | FieldType) -> FieldType:
    """Look up a FieldType by name (case-insensitive) or pass one through.

    Raises:
        ValueError: If the name is not a known field type.
    """
    if isinstance(name, FieldType):
        return name
    try:
        return FIELD_TYPE_NAMES[name.lower()]
    except (KeyError, AttributeError):
        known = ", ".join(sorted(FIELD_TYPE_NAMES))
        raise ValueError(f"Unknown field type {name!r} (expected one of: {known})") from None


@dataclass(frozen=True)
class FieldDefinition:
    """A named column of a schema."""

    name: str
    field_type: FieldType


@dataclass(frozen=True)
class FieldValue:
    """A typed cell: the column's type tag plus the raw 32-bit word.

    Keeping the raw word means floats (NaN payloads included) survive a
    decode/encode cycle bit for bit.
    """

    field_type: FieldType
    raw: int = 0

    @classmethod
    def from_value(cls, field_type: FieldType, value: Any) -> FieldValue:
        """Build a cell from a caller value, coercing it to the column type."""
        coerced = field_type.coerce(value)
        return cls(field_type, field_type.to_raw(coerced))

    @classmethod
    def from_bytes(cls, field_type: FieldType, data: bytes) -> FieldValue:
        """Build a cell from its 4 on-disk bytes."""
        return cls(field_type, _CELL.unpack(data)[0])

    @property
    def value(self) -> Any:
        """Return the decoded value (the offset for STRING_REF cells)."""
        return self.field_type.from_raw(self.raw)

    def to_bytes(self) -> bytes:
        """Return the 4 on-disk bytes of this cell."""
        return _CELL.pack(self.raw)
