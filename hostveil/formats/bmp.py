"""BMP header parsing."""

from __future__ import annotations

from hostveil.core.cursor import BinaryCursor
from hostveil.core.types import BmpInfo, FormatKind

BMP_SIGNATURE = b"BM"
FILE_SIZE_OFFSET = 2
PIXEL_OFFSET_OFFSET = 10
WIDTH_OFFSET = 18
BITS_PER_PIXEL_OFFSET = 28
COMPRESSION_OFFSET = 30

# BI_RGB and BI_BITFIELDS keep raw pixel bytes
_UNCOMPRESSED = (0, 3)


def detect(cursor: BinaryCursor) -> FormatKind:
    cursor.seek(0)
    if cursor.remaining() < COMPRESSION_OFFSET + 4 or cursor.read(2) != BMP_SIGNATURE:
        return FormatKind.UNKNOWN
    cursor.seek(COMPRESSION_OFFSET)
    compression = cursor.read_u32("<")
    if compression in _UNCOMPRESSED:
        return FormatKind.BMP_UNCOMPRESSED
    return FormatKind.BMP_COMPRESSED


def inspect(cursor: BinaryCursor) -> BmpInfo:
    cursor.seek(FILE_SIZE_OFFSET)
    total_size = cursor.read_u32("<")
    cursor.seek(PIXEL_OFFSET_OFFSET)
    pixel_offset = cursor.read_u32("<")
    if pixel_offset > total_size:
        raise ValueError(f"BMP pixel offset {pixel_offset} lies beyond file size {total_size}")

    cursor.seek(BITS_PER_PIXEL_OFFSET)
    bits_per_pixel = cursor.read_u16("<")

    cursor.seek(WIDTH_OFFSET)
    width = cursor.read_i32("<")
    # negative height means a top-down bitmap
    height = cursor.read_i32("<")

    return BmpInfo(
        header_size=pixel_offset,
        data_size=total_size - pixel_offset,
        bits_per_pixel=bits_per_pixel,
        pixel_count=abs(width) * abs(height),
    )
