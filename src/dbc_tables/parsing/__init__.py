"""Parsing module for the schema DSL."""

from dbc_tables.parsing.schema_parser import SchemaParser

__all__ = [
    "SchemaParser",
]
