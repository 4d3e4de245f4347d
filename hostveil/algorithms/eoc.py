"""
EOC (End Of Chunk) embedding for FLV hosts.

Every video tag is enlarged by one padding byte plus its share of the
payload. The payload is split evenly across the video tags (the last logical
block also takes the remainder); which physical tag carries which logical
block is decided by a password-keyed permutation.
"""

from __future__ import annotations

from typing import List

from hostveil.config import ENGINE_SETTINGS
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.scrambler import UnitPermutation
from hostveil.core.types import FormatKind
from hostveil.formats import flv
from hostveil.utils.logger import log_operation, setup_logger

from .base import EmbeddingContext, StegoEngine

logger = setup_logger(__name__)

PADDING_BYTE = ENGINE_SETTINGS["eoc_padding_byte"]


def block_share(block: int, block_count: int, hidden_length: int) -> int:
    """Number of payload bytes carried by logical *block*."""

    per_tag, remainder = divmod(hidden_length, block_count)
    return per_tag + remainder if block == block_count - 1 else per_tag


class EOCEngine(StegoEngine):
    """Grow FLV video tags to carry the payload."""

    name = "EOC"

    @staticmethod
    def _block_order(ctx: EmbeddingContext, count: int) -> List[int]:
        """``order[i]`` is the logical block stored in physical video tag ``i``."""

        return list(UnitPermutation(count, ctx.scrambler.reseed()))

    @staticmethod
    def _check_host(ctx: EmbeddingContext, kind: ErrorKind) -> int:
        if ctx.format is not FormatKind.FLV:
            raise HostveilError(ErrorKind.OTHER, f"EOC does not support {ctx.format.value} hosts")
        video_tags = ctx.metadata.video_tags
        if video_tags <= 0:
            raise HostveilError(kind, "FLV host has no video tag")
        return video_tags

    @log_operation("EOC Insert")
    def embed(self, ctx: EmbeddingContext) -> None:
        video_count = self._check_host(ctx, ErrorKind.INSERTION)
        per_tag = ctx.hidden_length // video_count
        order = self._block_order(ctx, video_count)

        host, result = ctx.host, ctx.result
        tags = list(flv.iter_tags(host))
        host.seek(0)
        host.copy_to(result, flv.BODY_OFFSET)

        video_index = 0
        for tag in tags:
            host.seek(tag.offset)
            if tag.tag_type != flv.VIDEO_TAG:
                host.copy_to(result, tag.end - tag.offset)
                continue

            block = order[video_index]
            video_index += 1
            share = block_share(block, video_count, ctx.hidden_length)
            grown = share + 1
            new_size = tag.data_size + grown
            new_previous = tag.previous_tag_size + grown
            if new_size > flv.MAX_DATA_SIZE:
                raise HostveilError(
                    ErrorKind.INSERTION,
                    f"video tag at {tag.offset} would grow to {new_size} bytes (24-bit limit)",
                )
            if new_previous > flv.MAX_PREVIOUS_TAG_SIZE:
                raise HostveilError(
                    ErrorKind.INSERTION,
                    f"previous tag size after {tag.offset} would overflow 32 bits",
                )

            result.write_u8(tag.tag_type)
            result.write_u24(new_size, ">")
            # timestamp, timestamp extension, stream id and original data
            host.seek(tag.offset + 4)
            host.copy_to(result, 1 + flv.TAG_HEADER_TAIL + tag.data_size)
            result.write_u8(PADDING_BYTE)

            ctx.hidden.seek(block * per_tag)
            result.write(ctx.scrambler.reseed().mask(ctx.hidden.read(share)))
            result.write_u32(new_previous, ">")
            logger.debug("Video tag at %d carries block %d (%d bytes)", tag.offset, block, share)

        host.seek(tags[-1].end if tags else flv.BODY_OFFSET)
        host.copy_rest_to(result)
        logger.info(f"Embedded {ctx.hidden_length} bytes across {video_count} FLV video tags")

    @log_operation("EOC Extract")
    def extract(self, ctx: EmbeddingContext) -> None:
        self._check_host(ctx, ErrorKind.EXTRACTION)
        video = [tag for tag in flv.iter_tags(ctx.host) if tag.tag_type == flv.VIDEO_TAG]
        video_count = len(video)
        if video_count == 0:
            raise HostveilError(ErrorKind.EXTRACTION, "FLV host has no video tag")

        physical = [0] * video_count
        for index, block in enumerate(self._block_order(ctx, video_count)):
            physical[block] = index

        for block in range(video_count):
            tag = video[physical[block]]
            share = block_share(block, video_count, ctx.hidden_length)
            if share + 1 > tag.data_size:
                raise HostveilError(
                    ErrorKind.EXTRACTION,
                    f"video tag at {tag.offset} is too small to hold block {block}",
                )
            masked = ctx.host.read_at(tag.data_offset + tag.data_size - share, share)
            ctx.result.write(ctx.scrambler.reseed().mask(masked))

        logger.info(f"Extracted {ctx.hidden_length} bytes from {video_count} FLV video tags")
