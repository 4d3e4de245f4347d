"""Append the masked payload after the last byte of the host."""

from __future__ import annotations

from hostveil.config import ENGINE_SETTINGS
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.utils.logger import log_operation, setup_logger

from .base import EmbeddingContext, StegoEngine

logger = setup_logger(__name__)

_BLOCK = ENGINE_SETTINGS["io_block_size"]


class EOFEngine(StegoEngine):
    """Result layout: ``[host][masked payload][signature]``."""

    name = "EOF"

    @log_operation("EOF Insert")
    def embed(self, ctx: EmbeddingContext) -> None:
        ctx.host.seek(0)
        copied = ctx.host.copy_rest_to(ctx.result)

        ctx.hidden.seek(0)
        ctx.scrambler.reseed()
        remaining = ctx.hidden_length
        while remaining:
            block = ctx.hidden.read(min(remaining, _BLOCK))
            ctx.result.write(ctx.scrambler.mask(block))
            remaining -= len(block)
        logger.info(f"Appended {ctx.hidden_length} bytes after {copied} host bytes")

    @log_operation("EOF Extract")
    def extract(self, ctx: EmbeddingContext) -> None:
        if ctx.signature is None or ctx.signature.offset is None:
            raise HostveilError(ErrorKind.EXTRACTION, "EOF extraction needs the signature offset")
        start = ctx.signature.offset - ctx.hidden_length
        if start < 0:
            raise HostveilError(ErrorKind.EXTRACTION, "declared hidden length exceeds the file size")

        # the payload sits between the host and the signature
        ctx.host.limit = ctx.signature.offset
        ctx.host.seek(start)
        ctx.scrambler.reseed()
        remaining = ctx.hidden_length
        while remaining:
            block = ctx.host.read(min(remaining, _BLOCK))
            ctx.result.write(ctx.scrambler.mask(block))
            remaining -= len(block)
