"""HOSTVEIL embedding algorithms."""

from __future__ import annotations

from typing import Dict

from hostveil.core.types import AlgoKind

from .base import EmbeddingContext, StegoEngine
from .eoc import EOCEngine
from .eof import EOFEngine
from .junk_chunk import JunkChunkEngine
from .lsb import LSBEngine
from .metadata import MetadataEngine

__all__ = [
    "EOCEngine",
    "EOFEngine",
    "EmbeddingContext",
    "JunkChunkEngine",
    "LSBEngine",
    "MetadataEngine",
    "StegoEngine",
    "get_engine",
]

_ENGINES: Dict[AlgoKind, type] = {
    AlgoKind.LSB: LSBEngine,
    AlgoKind.EOF: EOFEngine,
    AlgoKind.METADATA: MetadataEngine,
    AlgoKind.EOC: EOCEngine,
    AlgoKind.JUNK_CHUNK: JunkChunkEngine,
}


def get_engine(algorithm: AlgoKind) -> StegoEngine:
    """Return a fresh engine for *algorithm*."""

    return _ENGINES[algorithm]()
