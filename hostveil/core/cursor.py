"""Endian-aware sequential I/O over host, hidden and result streams."""

from __future__ import annotations

import io
import os
import struct
from typing import BinaryIO, Optional

from hostveil.config import ENGINE_SETTINGS
from hostveil.core.errors import CursorError

__all__ = ["BinaryCursor"]

_BLOCK = ENGINE_SETTINGS["io_block_size"]


class BinaryCursor:
    """Positioned reads and writes of fixed-width integers over one stream.

    ``limit`` hides everything at or after that offset from readers, which is
    how a trailing result signature is kept out of the format inspectors.
    """

    def __init__(self, stream: BinaryIO, *, name: str = "stream", limit: Optional[int] = None) -> None:
        self.stream = stream
        self.name = name
        self.limit = limit

    @classmethod
    def from_bytes(cls, data: bytes = b"", *, name: str = "memory") -> "BinaryCursor":
        return cls(io.BytesIO(data), name=name)

    # ------------------------------------------------------------------
    # Positioning
    # ------------------------------------------------------------------
    def tell(self) -> int:
        try:
            return self.stream.tell()
        except OSError as exc:
            raise CursorError(f"{self.name}: cannot get position ({exc})") from exc

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        try:
            position = self.stream.seek(offset, whence)
        except (OSError, ValueError) as exc:
            raise CursorError(f"{self.name}: cannot seek to {offset} ({exc})") from exc
        if position < 0:
            raise CursorError(f"{self.name}: negative position {position}")
        return position

    def skip(self, count: int) -> int:
        return self.seek(count, os.SEEK_CUR)

    def size(self) -> int:
        """Total stream size, ignoring ``limit``."""

        current = self.tell()
        end = self.seek(0, os.SEEK_END)
        self.seek(current)
        return end

    def end(self) -> int:
        """Readable end of the stream (``limit`` when set)."""

        return self.limit if self.limit is not None else self.size()

    def remaining(self) -> int:
        return max(0, self.end() - self.tell())

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def read(self, count: int) -> bytes:
        """Read exactly ``count`` bytes or raise :class:`CursorError`."""

        if count < 0:
            raise CursorError(f"{self.name}: negative read size {count}")
        if self.limit is not None and self.tell() + count > self.limit:
            raise CursorError(f"{self.name}: read of {count} bytes crosses offset {self.limit}")
        try:
            data = self.stream.read(count)
        except OSError as exc:
            raise CursorError(f"{self.name}: read failed ({exc})") from exc
        if len(data) != count:
            raise CursorError(f"{self.name}: expected {count} bytes, got {len(data)}")
        return data

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_u16(self, order: str = "<") -> int:
        return struct.unpack(order + "H", self.read(2))[0]

    def read_u24(self, order: str = "<") -> int:
        return int.from_bytes(self.read(3), "big" if order == ">" else "little")

    def read_u32(self, order: str = "<") -> int:
        return struct.unpack(order + "I", self.read(4))[0]

    def read_i32(self, order: str = "<") -> int:
        return struct.unpack(order + "i", self.read(4))[0]

    def read_at(self, offset: int, count: int) -> bytes:
        self.seek(offset)
        return self.read(count)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def write(self, data: bytes) -> None:
        try:
            written = self.stream.write(data)
        except OSError as exc:
            raise CursorError(f"{self.name}: write failed ({exc})") from exc
        if written is not None and written != len(data):
            raise CursorError(f"{self.name}: short write ({written}/{len(data)})")

    def write_u8(self, value: int) -> None:
        self.write(bytes((value,)))

    def write_u16(self, value: int, order: str = "<") -> None:
        self.write(struct.pack(order + "H", value))

    def write_u24(self, value: int, order: str = "<") -> None:
        if not 0 <= value <= 0xFFFFFF:
            raise CursorError(f"{self.name}: {value} does not fit in 24 bits")
        self.write(value.to_bytes(3, "big" if order == ">" else "little"))

    def write_u32(self, value: int, order: str = "<") -> None:
        self.write(struct.pack(order + "I", value))

    # ------------------------------------------------------------------
    # Bulk copies
    # ------------------------------------------------------------------
    def copy_to(self, dst: "BinaryCursor", count: int) -> None:
        """Copy ``count`` bytes from the current position into ``dst``."""

        while count > 0:
            block = self.read(min(count, _BLOCK))
            dst.write(block)
            count -= len(block)

    def copy_rest_to(self, dst: "BinaryCursor") -> int:
        """Copy everything up to :meth:`end` into ``dst``; return the count."""

        count = self.remaining()
        self.copy_to(dst, count)
        return count

    def flush(self) -> None:
        try:
            self.stream.flush()
        except OSError as exc:
            raise CursorError(f"{self.name}: flush failed ({exc})") from exc

    def close(self) -> None:
        self.stream.close()
