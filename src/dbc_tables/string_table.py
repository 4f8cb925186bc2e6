"""String block storage for DBC files."""

from __future__ import annotations

from collections.abc import Iterator

from dbc_tables.errors import StringResolutionError


class StringTable:
    """Immutable block of packed null-terminated strings.

    A string reference is the byte offset of the first character of its
    run; the run ends at the next zero byte.
    """

    ENCODING = "utf-8"

    def __init__(self, data: bytes = b"") -> None:
        self._data = bytes(data)

    @property
    def size(self) -> int:
        """Return the size of the block in bytes."""
        return len(self._data)

    def to_bytes(self) -> bytes:
        return self._data

    def resolve(self, offset: int) -> str:
        """Return the string starting at ``offset``.

        Raises:
            StringResolutionError: If the offset is outside the block, no
                terminator follows it, or the bytes are not valid text.
        """
        if not 0 <= offset < len(self._data):
            raise StringResolutionError(
                f"String offset {offset} out of range [0, {len(self._data)})"
            )
        end = self._data.find(b"\x00", offset)
        if end < 0:
            raise StringResolutionError(f"Unterminated string at offset {offset}")
        try:
            return self._data[offset:end].decode(self.ENCODING)
        except UnicodeDecodeError as exc:
            raise StringResolutionError(f"Undecodable string at offset {offset}: {exc}") from exc

    def offset_of(self, text: str) -> int:
        """Return the offset of the first string exactly equal to ``text``.

        Only string starts are considered (offset 0 and every byte following
        a terminator), so a suffix of a longer string never matches.

        Raises:
            StringResolutionError: If no such string exists in the block.
        """
        needle = text.encode(self.ENCODING)
        for offset, raw in self._runs():
            if raw == needle:
                return offset
        raise StringResolutionError(f"String {text!r} is not present in the string block")

    def strings(self) -> Iterator[tuple[int, str]]:
        """Iterate ``(offset, text)`` over every terminated string in the block."""
        for offset, raw in self._runs():
            yield offset, raw.decode(self.ENCODING, errors="replace")

    def _runs(self) -> Iterator[tuple[int, bytes]]:
        offset = 0
        while offset < len(self._data):
            end = self._data.find(b"\x00", offset)
            if end < 0:
                return
            yield offset, self._data[offset:end]
            offset = end + 1

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StringTable):
            return NotImplemented
        return self._data == other._data

    def __repr__(self) -> str:
        return f"StringTable(size={len(self._data)})"
