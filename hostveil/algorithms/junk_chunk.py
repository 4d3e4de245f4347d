"""Junk-chunk embedding for AVI hosts (selectable, not implemented)."""

from __future__ import annotations

from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.utils.logger import log_operation

from .base import EmbeddingContext, StegoEngine


class JunkChunkEngine(StegoEngine):
    name = "JUNK_CHUNK"

    @log_operation("Junk Chunk Insert")
    def embed(self, ctx: EmbeddingContext) -> None:
        raise HostveilError(ErrorKind.INSERTION, "junk chunk embedding is not implemented")

    @log_operation("Junk Chunk Extract")
    def extract(self, ctx: EmbeddingContext) -> None:
        raise HostveilError(ErrorKind.EXTRACTION, "junk chunk extraction is not implemented")
