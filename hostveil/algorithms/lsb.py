"""
LSB (Least Significant Bit) substitution
Hides each payload byte in the two low bits of four host bytes (BMP, WAV) or
in three spare bits of MPEG frame headers (MP3).
"""

from __future__ import annotations

from typing import Iterator

import numpy as np

from hostveil.config import ENGINE_SETTINGS
from hostveil.core.cursor import BinaryCursor
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.scrambler import Scrambler, UnitPermutation
from hostveil.core.types import FormatKind
from hostveil.formats import mp3
from hostveil.utils.logger import log_operation, setup_logger

from .base import EmbeddingContext, StegoEngine

logger = setup_logger(__name__)

LARGE_CAPACITY_THRESHOLD = ENGINE_SETTINGS["large_capacity_threshold"]
MP3_HEADER_BITS = ENGINE_SETTINGS["mp3_header_bits"]
# header bits 2 (original), 3 (copyright) and 8 (private)
MP3_MASKS = (0xFFFFFFFB, 0xFFFFFFF7, 0xFFFFFEFF)[:MP3_HEADER_BITS]
MP3_SHIFTS = (2, 3, 8)[:MP3_HEADER_BITS]

HOST_MASK = 0xFC
PAIRS_PER_BYTE = 4
_PAIR_SHIFTS = np.array([6, 4, 2, 0], dtype=np.uint8)
_BLOCK = ENGINE_SETTINGS["io_block_size"]


def split_pairs(data: np.ndarray) -> np.ndarray:
    """Split bytes into 2-bit pairs, most significant pair first."""

    return ((data[:, None] >> _PAIR_SHIFTS) & 0x03).astype(np.uint8).reshape(-1)


def join_pairs(pairs: np.ndarray) -> np.ndarray:
    """Inverse of :func:`split_pairs`."""

    grouped = (pairs.reshape(-1, PAIRS_PER_BYTE) & 0x03) << _PAIR_SHIFTS
    return np.bitwise_or.reduce(grouped, axis=1).astype(np.uint8)


def _substitute(carrier: np.ndarray, pairs: np.ndarray) -> np.ndarray:
    return ((carrier & HOST_MASK) | pairs).astype(np.uint8)


def _iter_masked_bits(hidden: BinaryCursor, length: int, scrambler: Scrambler) -> Iterator[int]:
    """Yield the bits of every masked payload byte, least significant first."""

    remaining = length
    while remaining:
        block = hidden.read(min(remaining, _BLOCK))
        remaining -= len(block)
        for value in scrambler.mask(block):
            for shift in range(8):
                yield (value >> shift) & 1


class LSBEngine(StegoEngine):
    """LSB substitution for BMP, WAV-PCM and MP3 hosts."""

    name = "LSB"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @log_operation("LSB Insert")
    def embed(self, ctx: EmbeddingContext) -> None:
        ctx.host.seek(0)
        ctx.hidden.seek(0)
        if ctx.format is FormatKind.MP3:
            self._embed_mp3(ctx)
            return
        self._check_byte_host(ctx)

        meta = ctx.metadata
        if ctx.hidden_length * PAIRS_PER_BYTE > meta.data_size:
            raise HostveilError(
                ErrorKind.INSERTION,
                f"host data holds {meta.data_size // PAIRS_PER_BYTE} bytes, need {ctx.hidden_length}",
            )
        ctx.host.copy_to(ctx.result, meta.header_size)

        if self.uses_file_order(ctx):
            logger.debug("Embedding %d bytes in file order", ctx.hidden_length)
            ctx.scrambler.reseed()
            remaining = ctx.hidden_length
            while remaining:
                count = min(remaining, _BLOCK)
                masked = np.frombuffer(ctx.scrambler.mask(ctx.hidden.read(count)), dtype=np.uint8)
                carrier = np.frombuffer(ctx.host.read(count * PAIRS_PER_BYTE), dtype=np.uint8)
                ctx.result.write(_substitute(carrier, split_pairs(masked)).tobytes())
                remaining -= count
        else:
            logger.debug("Embedding %d bytes in scrambled order", ctx.hidden_length)
            pixels = np.frombuffer(ctx.host.read(meta.data_size), dtype=np.uint8).copy()
            data = np.frombuffer(ctx.hidden.read(ctx.hidden_length), dtype=np.uint8)
            order = self._scrambled_order(ctx, pixels.size)
            pixels[order] = _substitute(pixels[order], split_pairs(data))
            ctx.result.write(pixels.tobytes())

        # rest of the data region and any trailing chunks
        ctx.host.copy_rest_to(ctx.result)
        logger.info(f"Embedded {ctx.hidden_length} bytes with LSB")

    @log_operation("LSB Extract")
    def extract(self, ctx: EmbeddingContext) -> None:
        ctx.host.seek(0)
        if ctx.format is FormatKind.MP3:
            self._extract_mp3(ctx)
            return
        self._check_byte_host(ctx)

        meta = ctx.metadata
        if ctx.hidden_length * PAIRS_PER_BYTE > meta.data_size:
            raise HostveilError(ErrorKind.EXTRACTION, "declared hidden length exceeds the host data")
        ctx.host.seek(meta.header_size)

        if self.uses_file_order(ctx):
            ctx.scrambler.reseed()
            remaining = ctx.hidden_length
            while remaining:
                count = min(remaining, _BLOCK)
                carrier = np.frombuffer(ctx.host.read(count * PAIRS_PER_BYTE), dtype=np.uint8)
                ctx.result.write(ctx.scrambler.mask(join_pairs(carrier).tobytes()))
                remaining -= count
        else:
            pixels = np.frombuffer(ctx.host.read(meta.data_size), dtype=np.uint8)
            order = self._scrambled_order(ctx, pixels.size)
            ctx.result.write(join_pairs(pixels[order]).tobytes())

        logger.info(f"Extracted {ctx.hidden_length} bytes with LSB")

    # ------------------------------------------------------------------
    # BMP / WAV helpers
    # ------------------------------------------------------------------
    @staticmethod
    def uses_file_order(ctx: EmbeddingContext) -> bool:
        """Large payloads, large hosts and WAV hosts skip the scrambled order."""

        return (
            ctx.hidden_length > LARGE_CAPACITY_THRESHOLD
            or ctx.format is FormatKind.WAV_PCM
            or ctx.metadata.data_size > LARGE_CAPACITY_THRESHOLD
        )

    @staticmethod
    def _scrambled_order(ctx: EmbeddingContext, unit_count: int) -> np.ndarray:
        """Host byte index for every bit pair, drawn from a fresh permutation."""

        permutation = UnitPermutation(unit_count, ctx.scrambler.reseed())
        pair_count = ctx.hidden_length * PAIRS_PER_BYTE
        return np.fromiter((permutation.draw() for _ in range(pair_count)), dtype=np.int64, count=pair_count)

    @staticmethod
    def _check_byte_host(ctx: EmbeddingContext) -> None:
        if ctx.format not in (FormatKind.BMP_UNCOMPRESSED, FormatKind.WAV_PCM):
            raise HostveilError(ErrorKind.OTHER, f"LSB does not support {ctx.format.value} hosts")

    # ------------------------------------------------------------------
    # MP3 helpers
    # ------------------------------------------------------------------
    def _embed_mp3(self, ctx: EmbeddingContext) -> None:
        meta = ctx.metadata
        ctx.host.copy_to(ctx.result, meta.first_frame)

        bits = _iter_masked_bits(ctx.hidden, ctx.hidden_length, ctx.scrambler.reseed())
        pending = next(bits, None)
        for _ in range(meta.frame_count):
            header = ctx.host.read_u32(">")
            if not mp3.is_frame_header(header):
                raise HostveilError(ErrorKind.INSERTION, f"invalid MPEG frame header at {ctx.host.tell() - 4}")
            for mask, shift in zip(MP3_MASKS, MP3_SHIFTS):
                if pending is None:
                    break
                header = (header & mask) | (pending << shift)
                pending = next(bits, None)
            ctx.result.write_u32(header, ">")
            ctx.host.copy_to(ctx.result, mp3.frame_length(header) - mp3.HEADER_SIZE)

        if pending is not None:
            raise HostveilError(ErrorKind.INSERTION, "MP3 host ran out of frames before the payload was hidden")

        # trailing ID3v1 tag
        ctx.host.copy_to(ctx.result, meta.eof - ctx.host.tell())
        logger.info(f"Embedded {ctx.hidden_length} bytes in {meta.frame_count} MP3 frame headers")

    def _extract_mp3(self, ctx: EmbeddingContext) -> None:
        meta = ctx.metadata
        needed = ctx.hidden_length * 8
        bits = []
        ctx.host.seek(meta.first_frame)
        for _ in range(meta.frame_count):
            if len(bits) >= needed:
                break
            header = ctx.host.read_u32(">")
            bits.extend((header >> shift) & 1 for shift in MP3_SHIFTS)
            ctx.host.skip(mp3.frame_length(header) - mp3.HEADER_SIZE)

        if len(bits) < needed:
            raise HostveilError(
                ErrorKind.EXTRACTION,
                f"MP3 frames hold {len(bits) // 8} bytes, signature declares {ctx.hidden_length}",
            )
        packed = np.packbits(np.array(bits[:needed], dtype=np.uint8), bitorder="little").tobytes()
        ctx.result.write(ctx.scrambler.reseed().mask(packed))
