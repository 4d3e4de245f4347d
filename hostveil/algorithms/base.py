"""Engine interface shared by every embedding algorithm."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from hostveil.core.cursor import BinaryCursor
from hostveil.core.scrambler import Scrambler
from hostveil.core.signature import write_signature
from hostveil.core.types import FormatKind, FormatMetadata, HostDescriptor, ResultSignature


@dataclass
class EmbeddingContext:
    """Everything one insert or extract pass needs, injected by the session."""

    host: BinaryCursor
    result: BinaryCursor
    descriptor: HostDescriptor
    scrambler: Scrambler
    hidden_length: int
    hidden: Optional[BinaryCursor] = None
    signature: Optional[ResultSignature] = None

    @property
    def format(self) -> FormatKind:
        return self.descriptor.format

    @property
    def metadata(self) -> FormatMetadata:
        return self.descriptor.metadata


class StegoEngine:
    """Base class: subclasses implement :meth:`embed` and :meth:`extract`."""

    name = "engine"

    def insert(self, ctx: EmbeddingContext) -> None:
        """Embed the hidden stream, then finalize with the result signature."""

        self.embed(ctx)
        write_signature(ctx.result, ctx.signature, ctx.scrambler)

    def embed(self, ctx: EmbeddingContext) -> None:
        raise NotImplementedError

    def extract(self, ctx: EmbeddingContext) -> None:
        raise NotImplementedError
