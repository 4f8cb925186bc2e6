"""Tests for the Table query and mutation API."""

import io
import struct

import pytest

from dbc_tables import Schema, Table
from dbc_tables.codec import Header
from dbc_tables.errors import (
    DBCIOError,
    FormatError,
    IndexOutOfRange,
    MissingFieldError,
    StringResolutionError,
    TypeMismatchError,
    UnknownFieldError,
)


class TestConstruction:
    """Tests for empty tables."""

    def test_empty_table(self, item_schema):
        table = Table(item_schema)

        assert len(table) == 0
        assert table.record_count == 0
        assert table.header() == Header(b"WDBC", 0, 3, 12, 1)
        assert table.path is None

    def test_custom_magic(self, item_schema):
        assert Table(item_schema, magic="TEST").header().magic == b"TEST"

    def test_invalid_magic(self, item_schema):
        with pytest.raises(ValueError):
            Table(item_schema, magic=b"TOOLONG")


class TestCreateRecord:
    """Tests for appending records."""

    def test_create_default_record(self, example_table):
        index = example_table.create_record()

        assert index == 2
        assert example_table.header().record_count == 3
        assert example_table.get_raw_record(index) == {"id": 0, "name": 0, "weight": 0.0}
        assert example_table.get_record(index) == {"id": 0, "name": "abc", "weight": 0.0}

    def test_create_with_values(self, example_table):
        index = example_table.create_record({"id": 99999, "name": "xy", "weight": 3})

        assert index == 2
        assert example_table.get_record(index) == {"id": 99999, "name": "xy", "weight": 3.0}

    def test_create_with_offset(self, example_table):
        index = example_table.create_record({"id": 3, "name": 4, "weight": 0.0})
        assert example_table.get_record(index)["name"] == ""

    def test_create_missing_field(self, example_table):
        with pytest.raises(MissingFieldError) as exc_info:
            example_table.create_record({"id": 3})

        assert exc_info.value.names == ["name", "weight"]
        assert len(example_table) == 2

    def test_none_counts_as_missing(self, example_table):
        with pytest.raises(MissingFieldError):
            example_table.create_record({"id": 3, "name": None, "weight": 1.0})

    def test_create_unknown_field(self, example_table):
        with pytest.raises(UnknownFieldError):
            example_table.create_record({"id": 3, "name": "xy", "weight": 1.0, "colour": 2})
        assert len(example_table) == 2

    def test_create_type_mismatch(self, example_table):
        with pytest.raises(TypeMismatchError):
            example_table.create_record({"id": "three", "name": "xy", "weight": 1.0})
        assert len(example_table) == 2

    def test_create_with_absent_string(self, example_table):
        with pytest.raises(StringResolutionError):
            example_table.create_record({"id": 3, "name": "NewModelName", "weight": 1.0})
        assert len(example_table) == 2
        assert example_table.header().string_block_size == 8


class TestUpdate:
    """Tests for updating fields."""

    def test_update_field(self, example_table):
        example_table.update_field(0, "id", 42)

        assert example_table.get_record(0) == {"id": 42, "name": "abc", "weight": 2.5}
        assert example_table.get_record(1) == {"id": 2, "name": "xy", "weight": 1.0}

    def test_update_float_is_coerced(self, example_table):
        example_table.update_field(1, "weight", 0.1)
        assert example_table.get_record(1)["weight"] == struct.unpack("<f", struct.pack("<f", 0.1))[0]

    def test_update_string_repoints(self, example_table):
        example_table.update_field(0, "name", "xy")

        assert example_table.get_raw_record(0)["name"] == 5
        assert example_table.get_record(0)["name"] == "xy"
        assert example_table.header().string_block_size == 8

    def test_update_string_by_offset(self, example_table):
        example_table.update_field(1, "name", 0)
        assert example_table.get_record(1)["name"] == "abc"

    def test_update_errors(self, example_table):
        with pytest.raises(IndexOutOfRange):
            example_table.update_field(2, "id", 1)
        with pytest.raises(IndexOutOfRange):
            example_table.update_field(-1, "id", 1)
        with pytest.raises(UnknownFieldError):
            example_table.update_field(0, "non_existent_field", 0)
        with pytest.raises(TypeMismatchError):
            example_table.update_field(0, "id", -1)
        assert example_table.get_record(0) == {"id": 1, "name": "abc", "weight": 2.5}

    def test_update_fields(self, example_table):
        example_table.update_fields(1, {"id": 7, "weight": -4.0})
        assert example_table.get_record(1) == {"id": 7, "name": "xy", "weight": -4.0}

    def test_update_fields_all_or_nothing_bad_key(self, example_table):
        with pytest.raises(UnknownFieldError):
            example_table.update_fields(0, {"id": 7, "bogus": 1, "weight": 9.0})
        assert example_table.get_record(0) == {"id": 1, "name": "abc", "weight": 2.5}

    def test_update_fields_all_or_nothing_bad_value(self, example_table):
        with pytest.raises(TypeMismatchError):
            example_table.update_fields(0, {"id": 7, "weight": "heavy"})
        with pytest.raises(StringResolutionError):
            example_table.update_fields(0, {"id": 7, "name": "missing"})
        assert example_table.get_record(0) == {"id": 1, "name": "abc", "weight": 2.5}

    def test_update_fields_index_out_of_range(self, example_table):
        with pytest.raises(IndexOutOfRange):
            example_table.update_fields(5, {"id": 7})


class TestDelete:
    """Tests for removing records."""

    def test_delete_preserves_order(self, example_table):
        example_table.create_record({"id": 3, "name": "", "weight": 0.0})

        example_table.delete_record(1)

        assert example_table.header().record_count == 2
        assert [r["id"] for r in example_table] == [1, 3]

    def test_delete_last(self, example_table):
        example_table.delete_record(len(example_table) - 1)
        assert [r["id"] for r in example_table] == [1]

    def test_delete_keeps_string_block(self, example_table):
        example_table.delete_record(1)
        assert example_table.header().string_block_size == 8
        assert example_table.string_table.resolve(5) == "xy"

    def test_delete_out_of_range(self, example_table):
        with pytest.raises(IndexOutOfRange):
            example_table.delete_record(2)
        with pytest.raises(IndexOutOfRange):
            example_table.delete_record(-1)
        assert len(example_table) == 2

    def test_index_error_compatible(self, example_table):
        with pytest.raises(IndexError):
            example_table.delete_record(999999)


class TestGetRecord:
    """Tests for point lookups."""

    def test_get_record(self, example_table):
        assert example_table.get_record(0) == {"id": 1, "name": "abc", "weight": 2.5}

    def test_get_record_returns_copy(self, example_table):
        record = example_table.get_record(0)
        record["id"] = 1000
        assert example_table.get_record(0)["id"] == 1

    def test_get_record_at_count(self, example_table):
        with pytest.raises(IndexOutOfRange) as exc_info:
            example_table.get_record(2)
        assert exc_info.value.index == 2
        assert exc_info.value.count == 2

    def test_get_record_dangling_offset(self, example_table):
        example_table.update_field(0, "name", 8)
        with pytest.raises(StringResolutionError):
            example_table.get_record(0)
        # Raw access still works
        assert example_table.get_raw_record(0)["name"] == 8


class TestFindBy:
    """Tests for equality search."""

    def test_find_by_number(self, example_table):
        assert example_table.find_by("id", 2) == [{"id": 2, "name": "xy", "weight": 1.0}]

    def test_find_by_string_compares_text(self, example_table):
        example_table.create_record({"id": 3, "name": "xy", "weight": 0.0})
        # Offset 6 points into "xy" and resolves to "y"
        example_table.create_record({"id": 4, "name": 6, "weight": 0.0})

        results = example_table.find_by("name", "xy")

        assert [r["id"] for r in results] == [2, 3]
        assert example_table.find_by("name", "y") == [{"id": 4, "name": "y", "weight": 0.0}]

    def test_find_by_float(self, example_table):
        example_table.update_field(0, "weight", 0.1)
        assert [r["id"] for r in example_table.find_by("weight", 0.1)] == [1]

    def test_find_by_no_match(self, example_table):
        assert example_table.find_by("id", 12345) == []
        assert example_table.find_by("name", "nothing") == []
        assert example_table.find_by("id", 1.5) == []
        assert example_table.find_by("id", -1) == []

    def test_find_indices(self, example_table):
        example_table.create_record({"id": 2, "name": "", "weight": 0.0})
        assert example_table.find_indices("id", 2) == [1, 2]

    def test_find_by_unknown_field(self, example_table):
        with pytest.raises(UnknownFieldError):
            example_table.find_by("bogus", 1)

    def test_find_by_wrong_value_type(self, example_table):
        with pytest.raises(TypeMismatchError):
            example_table.find_by("name", 0)
        with pytest.raises(TypeMismatchError):
            example_table.find_by("id", "1")

    def test_find_by_dangling_offset(self, example_table):
        example_table.update_field(1, "name", 100)
        with pytest.raises(StringResolutionError):
            example_table.find_by("name", "abc")


class TestHeader:
    """Tests for live header metadata."""

    def test_header_idempotent(self, example_table):
        before = example_table.header()
        example_table.get_record(0)
        example_table.find_by("id", 1)
        list(example_table)
        assert example_table.header() == before

    def test_header_tracks_mutations(self, example_table):
        example_table.create_record()
        assert example_table.header().record_count == 3
        example_table.delete_record(0)
        example_table.delete_record(0)
        assert example_table.header().record_count == 1


class TestLoadSave:
    """Tests for reading and writing files."""

    def test_open_and_save_round_trip(self, tmp_path, item_schema, example_bytes):
        path = tmp_path / "Item.dbc"
        path.write_bytes(example_bytes)

        table = Table.open(path, item_schema)
        assert table.path == path
        table.save()

        assert path.read_bytes() == example_bytes

    def test_write_changes_to_file(self, tmp_path, item_schema, example_bytes):
        path = tmp_path / "Item.dbc"
        path.write_bytes(example_bytes)

        table = Table.open(str(path), item_schema)
        table.update_field(0, "id", 99999)
        table.save()

        reloaded = Table.open(path, item_schema)
        assert reloaded.get_record(0)["id"] == 99999

    def test_save_to_new_path(self, tmp_path, example_table, item_schema):
        new_path = tmp_path / "Item_new.dbc"
        example_table.update_field(0, "name", "xy")

        example_table.save(new_path)

        assert example_table.path == new_path
        assert Table.open(new_path, item_schema).get_record(0)["name"] == "xy"

    def test_save_leaves_no_temp_files(self, tmp_path, example_table):
        example_table.save(tmp_path / "out.dbc")
        assert [p.name for p in tmp_path.iterdir()] == ["out.dbc"]

    def test_load_from_stream(self, item_schema, example_bytes):
        table = Table(item_schema).load(io.BytesIO(example_bytes))
        assert len(table) == 2
        assert table.path is None

    def test_save_to_stream(self, example_table, example_bytes):
        buffer = io.BytesIO()
        example_table.save(buffer)
        assert buffer.getvalue() == example_bytes
        assert example_table.to_bytes() == example_bytes

    def test_save_without_path(self, item_schema):
        with pytest.raises(ValueError):
            Table(item_schema).save()

    def test_load_missing_file(self, tmp_path, item_schema):
        with pytest.raises(DBCIOError):
            Table.open(tmp_path / "missing.dbc", item_schema)

    def test_io_error_is_os_error(self, tmp_path, item_schema):
        with pytest.raises(OSError):
            Table(item_schema).load(tmp_path / "missing.dbc")

    def test_save_into_missing_directory(self, tmp_path, example_table):
        with pytest.raises(DBCIOError):
            example_table.save(tmp_path / "no" / "such" / "dir.dbc")

    def test_failed_load_leaves_table_unchanged(self, example_table, example_bytes):
        example_table.update_field(0, "id", 77)

        with pytest.raises(FormatError):
            example_table.load(example_bytes[:-3])

        assert example_table.get_record(0)["id"] == 77
        assert example_table.header() == Header(b"TEST", 2, 3, 12, 8)

    def test_reload_replaces_contents(self, example_table, item_schema, pack_dbc):
        data = pack_dbc([struct.pack("<IIf", 9, 0, 0.0)], b"z\x00", field_count=3, magic=b"WDBC")

        example_table.load(data)

        assert example_table.magic == b"WDBC"
        assert list(example_table) == [{"id": 9, "name": "z", "weight": 0.0}]

    def test_load_with_wrong_schema(self, example_bytes):
        schema = Schema.from_pairs([("id", "uint32"), ("name", "string")])
        with pytest.raises(FormatError):
            Table(schema).load(example_bytes)

    def test_repr(self, example_table):
        assert repr(example_table) == "Table(magic=b'TEST', records=2, fields=3)"
