"""FLV header and tag walking.

Tag layout::

    [type:1][size:3][timestamp:3][timestamp_ext:1][stream_id:3][data:size][previous_tag_size:4]

The size and the first timestamp byte are read together as one big-endian
32-bit field, so the data starts :data:`TAG_HEADER_TAIL` bytes after it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from hostveil.core.cursor import BinaryCursor
from hostveil.core.types import FlvInfo, FormatKind, Mode

FLV_SIGNATURE = b"FLV"
HEADER_SIZE_OFFSET = 5
# 9-byte header followed by PreviousTagSize0
BODY_OFFSET = 13

AUDIO_TAG = 8
VIDEO_TAG = 9
METADATA_TAG = 18
SCRIPT_DATA_TAG = 24
KNOWN_TAGS = (AUDIO_TAG, VIDEO_TAG, METADATA_TAG, SCRIPT_DATA_TAG)

TAG_HEADER_TAIL = 6
TAG_HEADER_SIZE = 1 + 4 + TAG_HEADER_TAIL
MAX_DATA_SIZE = 0xFFFFFF
MAX_PREVIOUS_TAG_SIZE = 0xFFFFFFFF


@dataclass(frozen=True)
class FlvTag:
    tag_type: int
    offset: int
    data_size: int
    # low byte of the size field (first timestamp byte)
    size_field_low: int
    previous_tag_size: int

    @property
    def data_offset(self) -> int:
        return self.offset + TAG_HEADER_SIZE

    @property
    def end(self) -> int:
        """Offset right after the trailing previous-tag-size field."""

        return self.data_offset + self.data_size + 4


def detect(cursor: BinaryCursor) -> FormatKind:
    cursor.seek(0)
    if cursor.remaining() < BODY_OFFSET or cursor.read(3) != FLV_SIGNATURE:
        return FormatKind.UNKNOWN
    return FormatKind.FLV


def read_tag(cursor: BinaryCursor) -> FlvTag:
    """Read the tag starting at the current position; leave the cursor after it."""

    offset = cursor.tell()
    tag_type = cursor.read_u8()
    size_field = cursor.read_u32(">")
    data_size = size_field >> 8
    cursor.skip(TAG_HEADER_TAIL + data_size)
    previous_tag_size = cursor.read_u32(">")
    return FlvTag(tag_type, offset, data_size, size_field & 0xFF, previous_tag_size)


def iter_tags(cursor: BinaryCursor) -> Iterator[FlvTag]:
    """Yield known tags from :data:`BODY_OFFSET` until an unknown type or the end."""

    cursor.seek(BODY_OFFSET)
    while cursor.remaining() > 0:
        start = cursor.tell()
        tag_type = cursor.read_u8()
        cursor.seek(start)
        if tag_type not in KNOWN_TAGS:
            return
        yield read_tag(cursor)


def inspect(cursor: BinaryCursor, mode: Mode) -> FlvInfo:
    cursor.seek(HEADER_SIZE_OFFSET)
    header_size = cursor.read_u32(">")
    file_size = header_size + 4

    video_tags = metadata_tags = 0
    for tag in iter_tags(cursor):
        if tag.tag_type == VIDEO_TAG:
            video_tags += 1
        elif tag.tag_type == METADATA_TAG:
            metadata_tags += 1
        file_size += tag.previous_tag_size + 4

    if mode is Mode.INSERT and cursor.remaining() > 0:
        raise ValueError("FLV file has trailing data after its last tag; cannot insert into it")
    return FlvInfo(video_tags=video_tags, metadata_tags=metadata_tags, file_size=file_size)
