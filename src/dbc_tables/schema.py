"""Schema describing the column layout of a DBC file."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from dbc_tables.errors import UnknownFieldError
from dbc_tables.types import CELL_SIZE, FieldDefinition, FieldType, field_type_from_name


class Schema:
    """Ordered, name-unique list of typed columns.

    Column order is the on-disk cell order. The schema is immutable once
    built and may be shared by any number of tables.
    """

    def __init__(self, fields: Iterable[FieldDefinition], name: str | None = None) -> None:
        """Initialize a schema.

        Args:
            fields: Column definitions in on-disk order.
            name: Optional table name (e.g. ``Item``), informational only.

        Raises:
            ValueError: If two columns share a name.
        """
        self.name = name
        self._fields: tuple[FieldDefinition, ...] = tuple(fields)
        self._positions: dict[str, int] = {}
        for position, field in enumerate(self._fields):
            if field.name in self._positions:
                raise ValueError(f"Duplicate field name: {field.name!r}")
            self._positions[field.name] = position

    @classmethod
    def from_pairs(
        cls, pairs: Iterable[tuple[str, FieldType | str]], name: str | None = None
    ) -> Schema:
        """Build a schema from ``(name, type)`` pairs; types may be given by name."""
        return cls(
            (FieldDefinition(field_name, field_type_from_name(field_type)) for field_name, field_type in pairs),
            name=name,
        )

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, FieldType | str], name: str | None = None
    ) -> Schema:
        """Build a schema from an insertion-ordered ``{name: type}`` mapping."""
        return cls.from_pairs(mapping.items(), name=name)

    @classmethod
    def parse(cls, text: str) -> Schema:
        """Parse a schema written in the schema DSL.

        Example::

            Item {
                id: uint32,
                name: string,
                weight: float32,
            }
        """
        from dbc_tables.parsing import SchemaParser

        return SchemaParser().parse(text)

    @property
    def fields(self) -> tuple[FieldDefinition, ...]:
        return self._fields

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self._fields]

    @property
    def field_count(self) -> int:
        return len(self._fields)

    @property
    def record_size(self) -> int:
        """Return the size in bytes of one record."""
        return CELL_SIZE * len(self._fields)

    def position(self, name: str) -> int:
        """Return the column position of a field.

        Raises:
            UnknownFieldError: If the field is not in the schema.
        """
        try:
            return self._positions[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def get_field(self, name: str) -> FieldDefinition:
        """Return the definition of a field by name."""
        return self._fields[self.position(name)]

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[FieldDefinition]:
        return iter(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self._fields == other._fields

    def __hash__(self) -> int:
        return hash(self._fields)

    def __repr__(self) -> str:
        columns = ", ".join(f"{f.name}: {f.field_type.value}" for f in self._fields)
        prefix = f"{self.name} " if self.name else ""
        return f"Schema({prefix}{{{columns}}})"
