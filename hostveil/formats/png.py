"""PNG chunk chain walking."""

from __future__ import annotations

import struct
import zlib
from typing import Iterator, Tuple

from hostveil.core.cursor import BinaryCursor
from hostveil.core.types import FormatKind, PngInfo

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IEND = b"IEND"
_CHUNK_HEADER = struct.Struct(">I4s")
_CRC_STRUCT = struct.Struct(">I")
# length + type + crc around the chunk data
CHUNK_OVERHEAD = _CHUNK_HEADER.size + _CRC_STRUCT.size

PNGChunkInfo = Tuple[bytes, int, int]
"""``(chunk_type, chunk_start, length)``; offsets from the start of the file."""


def detect(cursor: BinaryCursor) -> FormatKind:
    cursor.seek(0)
    if cursor.remaining() < len(PNG_SIGNATURE) or cursor.read(len(PNG_SIGNATURE)) != PNG_SIGNATURE:
        return FormatKind.UNKNOWN
    return FormatKind.PNG


def iter_chunks(cursor: BinaryCursor) -> Iterator[PNGChunkInfo]:
    """Yield every chunk up to and including ``IEND``."""

    offset = len(PNG_SIGNATURE)
    while True:
        cursor.seek(offset)
        length, chunk_type = _CHUNK_HEADER.unpack(cursor.read(_CHUNK_HEADER.size))
        yield chunk_type, offset, length
        if chunk_type == IEND:
            return
        offset += CHUNK_OVERHEAD + length


def build_chunk(chunk_type: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + payload) & 0xFFFFFFFF
    return _CHUNK_HEADER.pack(len(payload), chunk_type) + payload + _CRC_STRUCT.pack(crc)


def read_chunk_data(cursor: BinaryCursor, chunk: PNGChunkInfo) -> bytes:
    """Return the data of *chunk* after checking its CRC."""

    chunk_type, chunk_start, length = chunk
    cursor.seek(chunk_start + _CHUNK_HEADER.size)
    data = cursor.read(length)
    (stored_crc,) = _CRC_STRUCT.unpack(cursor.read(_CRC_STRUCT.size))
    if zlib.crc32(chunk_type + data) & 0xFFFFFFFF != stored_crc:
        raise ValueError(f"PNG chunk {chunk_type!r} is corrupted (CRC mismatch)")
    return data


def inspect(cursor: BinaryCursor) -> PngInfo:
    cursor.seek(len(PNG_SIGNATURE))
    ihdr_length = cursor.read_u32(">")
    header_size = len(PNG_SIGNATURE) + CHUNK_OVERHEAD + ihdr_length

    iend_offset = None
    for chunk_type, chunk_start, _length in iter_chunks(cursor):
        if chunk_type == IEND:
            iend_offset = chunk_start
    file_size = iend_offset + CHUNK_OVERHEAD
    if file_size > cursor.end():
        raise ValueError("PNG IEND chunk is truncated")
    return PngInfo(header_size=header_size, data_size=file_size - header_size)
