"""
Metadata embedding.

BMP: the masked payload is inserted between the header (and palette) and the
pixel array; the file-size and pixel-offset fields are shifted to match.
PNG: the masked payload travels in a private ancillary chunk placed right
before ``IEND``.
"""

from __future__ import annotations

import struct

from hostveil.config import ENGINE_SETTINGS
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.types import FormatKind
from hostveil.formats import bmp, png
from hostveil.utils.logger import log_operation, setup_logger

from .base import EmbeddingContext, StegoEngine

logger = setup_logger(__name__)

BMP_METADATA_MAX = ENGINE_SETTINGS["bmp_metadata_max"]
# PNG chunk lengths are limited to 2^31 - 1
PNG_CHUNK_MAX = 0x7FFFFFFF
_U32 = struct.Struct("<I")
_BLOCK = ENGINE_SETTINGS["io_block_size"]


def _validate_chunk_type(chunk_type: bytes) -> bytes:
    if len(chunk_type) != 4 or not chunk_type.isalpha():
        raise ValueError("PNG chunk type must be exactly 4 ASCII letters")
    if not chunk_type[:1].islower():
        raise ValueError("PNG chunk type must be ancillary (first letter lowercase)")
    return chunk_type


PNG_CHUNK_TYPE = _validate_chunk_type(ENGINE_SETTINGS["png_chunk_type"])


class MetadataEngine(StegoEngine):
    """Hide the payload in BMP header space or a PNG ancillary chunk."""

    name = "METADATA"

    @log_operation("Metadata Insert")
    def embed(self, ctx: EmbeddingContext) -> None:
        ctx.host.seek(0)
        ctx.hidden.seek(0)
        if ctx.format.is_bmp:
            self._embed_bmp(ctx)
        elif ctx.format is FormatKind.PNG:
            self._embed_png(ctx)
        else:
            raise HostveilError(ErrorKind.OTHER, f"metadata embedding does not support {ctx.format.value} hosts")

    @log_operation("Metadata Extract")
    def extract(self, ctx: EmbeddingContext) -> None:
        if ctx.format.is_bmp:
            self._extract_bmp(ctx)
        elif ctx.format is FormatKind.PNG:
            self._extract_png(ctx)
        else:
            raise HostveilError(ErrorKind.OTHER, f"metadata extraction does not support {ctx.format.value} hosts")

    # ------------------------------------------------------------------
    # BMP
    # ------------------------------------------------------------------
    def _embed_bmp(self, ctx: EmbeddingContext) -> None:
        meta = ctx.metadata
        header = bytearray(ctx.host.read(meta.header_size))
        (total_size,) = _U32.unpack_from(header, bmp.FILE_SIZE_OFFSET)
        (pixel_offset,) = _U32.unpack_from(header, bmp.PIXEL_OFFSET_OFFSET)
        if total_size + ctx.hidden_length > BMP_METADATA_MAX:
            raise HostveilError(ErrorKind.INSERTION, "BMP size field cannot describe the enlarged file")

        _U32.pack_into(header, bmp.FILE_SIZE_OFFSET, total_size + ctx.hidden_length)
        _U32.pack_into(header, bmp.PIXEL_OFFSET_OFFSET, pixel_offset + ctx.hidden_length)
        ctx.result.write(bytes(header))

        ctx.scrambler.reseed()
        remaining = ctx.hidden_length
        while remaining:
            block = ctx.hidden.read(min(remaining, _BLOCK))
            ctx.result.write(ctx.scrambler.mask(block))
            remaining -= len(block)

        ctx.host.copy_rest_to(ctx.result)
        logger.info(f"Inserted {ctx.hidden_length} bytes before the BMP pixel array")

    def _extract_bmp(self, ctx: EmbeddingContext) -> None:
        start = ctx.metadata.header_size - ctx.hidden_length
        if start < bmp.COMPRESSION_OFFSET + 4:
            raise HostveilError(ErrorKind.EXTRACTION, "BMP header is too small to hold the declared payload")
        ctx.host.seek(start)
        ctx.scrambler.reseed()
        remaining = ctx.hidden_length
        while remaining:
            block = ctx.host.read(min(remaining, _BLOCK))
            ctx.result.write(ctx.scrambler.mask(block))
            remaining -= len(block)

    # ------------------------------------------------------------------
    # PNG
    # ------------------------------------------------------------------
    def _embed_png(self, ctx: EmbeddingContext) -> None:
        if ctx.hidden_length > PNG_CHUNK_MAX:
            raise HostveilError(ErrorKind.INSERTION, "payload does not fit in a single PNG chunk")
        iend_offset = ctx.metadata.iend_offset
        ctx.host.copy_to(ctx.result, iend_offset)

        payload = ctx.scrambler.reseed().mask(ctx.hidden.read(ctx.hidden_length))
        ctx.result.write(png.build_chunk(PNG_CHUNK_TYPE, payload))

        # IEND and anything after it
        ctx.host.copy_rest_to(ctx.result)
        logger.info(f"Inserted {PNG_CHUNK_TYPE.decode('ascii')} chunk with {ctx.hidden_length} bytes")

    def _extract_png(self, ctx: EmbeddingContext) -> None:
        chunk = next(
            (info for info in png.iter_chunks(ctx.host) if info[0] == PNG_CHUNK_TYPE),
            None,
        )
        if chunk is None:
            raise HostveilError(ErrorKind.EXTRACTION, f"no {PNG_CHUNK_TYPE.decode('ascii')} chunk in the PNG host")

        data = png.read_chunk_data(ctx.host, chunk)
        if len(data) != ctx.hidden_length:
            raise HostveilError(
                ErrorKind.EXTRACTION,
                f"hidden chunk holds {len(data)} bytes, signature declares {ctx.hidden_length}",
            )
        ctx.result.write(ctx.scrambler.reseed().mask(data))
