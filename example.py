"""Example usage of the dbc_tables library."""

from pathlib import Path

from dbc_tables import Schema, Table

# Define the record layout using the DSL
schema = Schema.parse(
    """
    Item {
        id: uint32
        name: string
        quality: int32
        weight: float32
    }
    """
)

# String block with the names the records will point at
strings = b"\x00Sword\x00Shield\x00Potion\x00"

table = Table(schema, string_block=strings)

items = [
    {"id": 1, "name": "Sword", "quality": 3, "weight": 7.5},
    {"id": 2, "name": "Shield", "quality": 2, "weight": 12.0},
    {"id": 3, "name": "Potion", "quality": 1, "weight": 0.25},
    {"id": 4, "name": "Sword", "quality": -1, "weight": 6.0},
]

print("Creating Item records...")
for item in items:
    index = table.create_record(item)
    print(f"  Created [{index}]: {table.get_record(index)}")

# Write the file
data_path = Path("./example_data/Item.dbc")
data_path.parent.mkdir(parents=True, exist_ok=True)
table.save(data_path)
print(f"\nWrote {data_path} ({data_path.stat().st_size} bytes)")
print(f"Header: {table.header().as_dict()}")

# Read it back and query it
loaded = Table.open(data_path, schema)
print("\nAll swords:")
for record in loaded.find_by("name", "Sword"):
    print(f"  {record}")

print("\n" + "=" * 60)
print("You can now dump this file with:")
print(f"  dbc-dump {data_path} --schema 'id: uint32, name: string, quality: int32, weight: float32'")
