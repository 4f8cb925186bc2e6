"""Tool for dumping DBC file contents to the console."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dbc_tables.errors import DBCError
from dbc_tables.schema import Schema
from dbc_tables.table import Table
from dbc_tables.types import FieldType


def load_schema_arg(value: str) -> Schema:
    """Parse a ``--schema`` argument: DSL text, or ``@path`` to a schema file."""
    if value.startswith("@"):
        schema_path = Path(value[1:])
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_path}")
        value = schema_path.read_text()
    return Schema.parse(value)


def parse_find(expression: str, schema: Schema) -> tuple[str, Any]:
    """Split ``FIELD=VALUE`` and convert VALUE to the field's Python type."""
    name, sep, text = expression.partition("=")
    if not sep:
        raise ValueError(f"Expected FIELD=VALUE, got {expression!r}")
    field_type = schema.get_field(name).field_type
    if field_type is FieldType.STRING_REF:
        return name, text
    if field_type is FieldType.FLOAT32:
        return name, float(text)
    return name, int(text, 0)


def format_value(value: Any, field_type: FieldType, raw: bool = False) -> str:
    """Format a value for display."""
    if field_type is FieldType.STRING_REF:
        return f"@{value}" if raw else repr(value)
    elif field_type is FieldType.FLOAT32:
        return f"{value:.6g}"
    return str(value)


def print_header(table: Table) -> None:
    header = table.header()
    print(f"Magic: {header.magic.decode('ascii')}")
    print(f"Records: {header.record_count}")
    print(f"Fields: {header.field_count}")
    print(f"Record size: {header.record_size} bytes")
    print(f"String block: {header.string_block_size} bytes")


def dump_table_raw(table: Table, indices: list[int], limit: int | None = None) -> None:
    """Dump records as columns, showing string offsets instead of text."""
    print_header(table)
    print("-" * 60)

    fields = table.schema.fields
    print(f"{'#':>6}  " + "  ".join(f"{f.name:>16}" for f in fields))
    print("-" * (8 + 18 * len(fields)))

    shown = indices[:limit] if limit else indices
    for i in shown:
        record = table.get_raw_record(i)
        values = [format_value(record[f.name], f.field_type, raw=True) for f in fields]
        print(f"{i:>6}  " + "  ".join(f"{v:>16}" for v in values))

    if limit and len(indices) > limit:
        print(f"... ({len(indices) - limit} more records)")


def dump_table_resolved(table: Table, indices: list[int], limit: int | None = None) -> None:
    """Dump records one field per line with strings resolved."""
    print_header(table)
    print("-" * 60)

    shown = indices[:limit] if limit else indices
    for i in shown:
        record = table.get_record(i)
        print(f"[{i}]")
        for f in table.schema.fields:
            print(f"    {f.name}: {format_value(record[f.name], f.field_type)}")
        print()

    if limit and len(indices) > limit:
        print(f"... ({len(indices) - limit} more records)")


def dump_table_json(
    table: Table, indices: list[int], limit: int | None = None, raw: bool = False
) -> None:
    """Dump records as a JSON array."""
    shown = indices[:limit] if limit else indices
    records = []
    for i in shown:
        record = table.get_raw_record(i) if raw else table.get_record(i)
        records.append({"_index": i, **record})
    print(json.dumps(records, indent=2))


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Dump DBC file contents to the console"
    )
    parser.add_argument(
        "file",
        type=Path,
        help="Path to the DBC file",
    )
    parser.add_argument(
        "-s", "--schema",
        required=True,
        help="Schema definition, or @path to a file containing one",
    )
    parser.add_argument(
        "-r", "--raw",
        action="store_true",
        help="Show string offsets instead of resolved text",
    )
    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Output as JSON",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        default=None,
        help="Limit number of records to display",
    )
    parser.add_argument(
        "--find",
        metavar="FIELD=VALUE",
        help="Only show records whose FIELD equals VALUE",
    )
    parser.add_argument(
        "--header",
        action="store_true",
        help="Only print the header",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not args.file.exists():
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    try:
        schema = load_schema_arg(args.schema)
        table = Table.open(args.file, schema)
    except (DBCError, OSError, SyntaxError, ValueError) as e:
        print(f"Error loading data: {e}", file=sys.stderr)
        return 1

    try:
        if args.header:
            print_header(table)
            return 0

        if args.find:
            name, value = parse_find(args.find, schema)
            indices = table.find_indices(name, value)
        else:
            indices = list(range(len(table)))

        if args.json:
            dump_table_json(table, indices, args.limit, args.raw)
        elif args.raw:
            dump_table_raw(table, indices, args.limit)
        else:
            dump_table_resolved(table, indices, args.limit)
    except (DBCError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
