"""Exception types raised by dbc_tables.

Every error derives from :class:`DBCError` and from the built-in exception
that best describes it, so ``except IndexError`` and friends keep working.
"""

from __future__ import annotations


class DBCError(Exception):
    """Base class for all dbc_tables errors."""


class DBCIOError(DBCError, OSError):
    """Opening, reading or writing a DBC file failed."""


class FormatError(DBCError, ValueError):
    """The byte stream is not a well-formed DBC file for the given schema."""


class IndexOutOfRange(DBCError, IndexError):
    """A record index is outside ``[0, record_count)``."""

    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"Record index {index} out of range [0, {count})")
        self.index = index
        self.count = count


class UnknownFieldError(DBCError, KeyError):
    """A field name is not part of the schema."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown field: {self.name!r}"


class MissingFieldError(DBCError, KeyError):
    """A record was created with values that do not cover every field."""

    def __init__(self, names: list[str]) -> None:
        super().__init__(names)
        self.names = names

    def __str__(self) -> str:
        return "Missing value for field(s): " + ", ".join(self.names)


class TypeMismatchError(DBCError, TypeError):
    """A value cannot be coerced to its column's declared type."""


class StringResolutionError(DBCError, LookupError):
    """A string offset or text cannot be resolved in the string block."""
