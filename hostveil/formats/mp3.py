"""MPEG audio Layer III frame walking with ID3v2/ID3v1 tag handling."""

from __future__ import annotations

from typing import Optional

from hostveil.core.cursor import BinaryCursor
from hostveil.core.types import FormatKind, Mp3Info

ID3V2_ID = b"ID3"
ID3V2_HEADER_SIZE = 10
ID3V2_FOOTER_FLAG = 0x10
ID3V1_ID = b"TAG"
ID3V1_SIZE = 128
HEADER_SIZE = 4
# how far past the ID3v2 tag we look for the first frame
FIRST_FRAME_SEARCH = 64 * 1024

_VERSION_1 = 0b11
_VERSION_2 = 0b10
_VERSION_25 = 0b00
_LAYER_3 = 0b01

_BITRATES_KBPS = {
    _VERSION_1: (0, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320),
    _VERSION_2: (0, 8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 144, 160),
}
_BITRATES_KBPS[_VERSION_25] = _BITRATES_KBPS[_VERSION_2]

_SAMPLE_RATES = {
    _VERSION_1: (44100, 48000, 32000),
    _VERSION_2: (22050, 24000, 16000),
    _VERSION_25: (11025, 12000, 8000),
}


def is_frame_header(header: int) -> bool:
    """Return ``True`` for a valid MPEG-1/2/2.5 Layer III frame header."""

    if (header >> 21) & 0x7FF != 0x7FF:
        return False
    version = (header >> 19) & 0b11
    layer = (header >> 17) & 0b11
    bitrate_index = (header >> 12) & 0xF
    sample_rate_index = (header >> 10) & 0b11
    emphasis = header & 0b11
    return (
        version in _SAMPLE_RATES
        and layer == _LAYER_3
        and bitrate_index not in (0, 0xF)
        and sample_rate_index != 0b11
        and emphasis != 0b10
    )


def frame_length(header: int) -> int:
    """Whole frame length in bytes (header included)."""

    version = (header >> 19) & 0b11
    bitrate = _BITRATES_KBPS[version][(header >> 12) & 0xF] * 1000
    sample_rate = _SAMPLE_RATES[version][(header >> 10) & 0b11]
    padding = (header >> 9) & 1
    coefficient = 144 if version == _VERSION_1 else 72
    return coefficient * bitrate // sample_rate + padding


def is_id3v1_header(header: int) -> bool:
    return (header >> 8).to_bytes(3, "big") == ID3V1_ID


def id3v2_size(cursor: BinaryCursor) -> int:
    """Size of a leading ID3v2 tag, or 0 when the file has none."""

    cursor.seek(0)
    if cursor.remaining() < ID3V2_HEADER_SIZE:
        return 0
    header = cursor.read(ID3V2_HEADER_SIZE)
    if header[:3] != ID3V2_ID:
        return 0
    size = 0
    for byte in header[6:10]:
        size = (size << 7) | (byte & 0x7F)
    footer = ID3V2_HEADER_SIZE if header[5] & ID3V2_FOOTER_FLAG else 0
    return ID3V2_HEADER_SIZE + size + footer


def _header_at(cursor: BinaryCursor, offset: int) -> Optional[int]:
    if offset + HEADER_SIZE > cursor.end():
        return None
    cursor.seek(offset)
    return cursor.read_u32(">")


def find_first_frame(cursor: BinaryCursor) -> int:
    start = id3v2_size(cursor)
    stop = min(cursor.end(), start + FIRST_FRAME_SEARCH)
    for offset in range(start, stop):
        header = _header_at(cursor, offset)
        if header is None:
            break
        if is_frame_header(header):
            return offset
    raise ValueError("no MPEG Layer III frame header found")


def detect(cursor: BinaryCursor) -> FormatKind:
    start = id3v2_size(cursor)
    if start:
        return FormatKind.MP3
    header = _header_at(cursor, 0)
    if header is not None and is_frame_header(header):
        return FormatKind.MP3
    return FormatKind.UNKNOWN


def inspect(cursor: BinaryCursor) -> Mp3Info:
    first_frame = find_first_frame(cursor)
    end = cursor.end()

    frame_count = 0
    position = first_frame
    header = _header_at(cursor, position)
    while header is not None and is_frame_header(header):
        length = frame_length(header)
        if position + length > end:
            break
        frame_count += 1
        position += length
        header = _header_at(cursor, position)

    eof = position
    if header is not None and is_id3v1_header(header) and position + ID3V1_SIZE <= end:
        eof += ID3V1_SIZE
    return Mp3Info(first_frame=first_frame, frame_count=frame_count, eof=eof)
