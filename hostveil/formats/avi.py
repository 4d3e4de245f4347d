"""AVI (RIFF) detection. No metadata is needed for AVI hosts."""

from __future__ import annotations

from hostveil.core.cursor import BinaryCursor
from hostveil.core.types import AviInfo, FormatKind

RIFF_ID = b"RIFF"
AVI_ID = b"AVI "
STRF_ID = b"strf"
# the stream headers live near the start of the file
HEADER_SCAN = 64 * 1024
# biCompression inside BITMAPINFOHEADER
BI_COMPRESSION_OFFSET = 16
_UNCOMPRESSED = (0, int.from_bytes(b"DIB ", "little"))


def detect(cursor: BinaryCursor) -> FormatKind:
    cursor.seek(0)
    if cursor.remaining() < 12:
        return FormatKind.UNKNOWN
    header = cursor.read(12)
    if header[:4] != RIFF_ID or header[8:12] != AVI_ID:
        return FormatKind.UNKNOWN

    head = cursor.read(min(HEADER_SCAN, cursor.remaining()))
    strf = head.find(STRF_ID)
    # strf id + 4-byte size precede the BITMAPINFOHEADER
    field = strf + 8 + BI_COMPRESSION_OFFSET
    if strf == -1 or field + 4 > len(head):
        return FormatKind.AVI_UNCOMPRESSED
    compression = int.from_bytes(head[field:field + 4], "little")
    if compression in _UNCOMPRESSED:
        return FormatKind.AVI_UNCOMPRESSED
    return FormatKind.AVI_COMPRESSED


def inspect(cursor: BinaryCursor) -> AviInfo:
    return AviInfo()
