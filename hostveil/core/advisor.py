"""
Capacity advisor.

Decides which algorithms can carry the payload for the inspected host and
validates the caller's choice.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Optional

from hostveil.config import ENGINE_SETTINGS
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.scrambler import Scrambler
from hostveil.core.types import (
    AlgoKind,
    EligibilitySet,
    FormatKind,
    HostDescriptor,
    Method,
    Mode,
)
from hostveil.utils.logger import setup_logger

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from hostveil.session import Session

__all__ = [
    "MAX_HIDDEN_LENGTH",
    "eligibility",
    "generate_password",
    "lsb_capacity_bits",
    "suggest",
    "choose",
    "validate_hidden_length",
]

logger = setup_logger(__name__)

MAX_HIDDEN_LENGTH = 0xFFFFFFFF
MP3_HEADER_BITS = ENGINE_SETTINGS["mp3_header_bits"]
BMP_METADATA_MAX = ENGINE_SETTINGS["bmp_metadata_max"]
PASSWORD_LENGTH = ENGINE_SETTINGS["default_password_length"]

_EOF_EXCLUDED = (FormatKind.UNKNOWN, FormatKind.AVI_UNCOMPRESSED, FormatKind.AVI_COMPRESSED)


def validate_hidden_length(size: int) -> int:
    """Return *size* when it can be recorded in the signature."""

    if size <= 0:
        raise HostveilError(ErrorKind.HIDDEN_EMPTY)
    if size >= MAX_HIDDEN_LENGTH:
        raise HostveilError(ErrorKind.HIDDEN_LENGTH, f"{size} bytes (limit {MAX_HIDDEN_LENGTH - 1})")
    return size


def lsb_capacity_bits(descriptor: HostDescriptor) -> Optional[int]:
    """LSB capacity of the host in bits, or ``None`` when LSB cannot apply."""

    kind, meta = descriptor.format, descriptor.metadata
    if kind is FormatKind.BMP_UNCOMPRESSED:
        # palette-indexed bitmaps are never eligible
        if meta.bits_per_pixel <= 8:
            return None
        return meta.bits_per_pixel * meta.pixel_count // 8 // 4
    if kind is FormatKind.WAV_PCM:
        bytes_per_sample = meta.bits_per_sample // 8
        if bytes_per_sample == 0:
            return None
        return (meta.data_size // bytes_per_sample) * 2
    if kind is FormatKind.MP3:
        return meta.frame_count * MP3_HEADER_BITS
    return None


def eligibility(descriptor: HostDescriptor, hidden_length: int) -> EligibilitySet:
    """Evaluate every capacity rule for *hidden_length* bytes."""

    kind, meta = descriptor.format, descriptor.metadata
    flags = {algo: False for algo in AlgoKind}

    capacity = lsb_capacity_bits(descriptor)
    flags[AlgoKind.LSB] = capacity is not None and hidden_length * 8 <= capacity

    flags[AlgoKind.EOF] = kind not in _EOF_EXCLUDED

    if kind.is_bmp:
        flags[AlgoKind.METADATA] = hidden_length + 2 * meta.header_size <= BMP_METADATA_MAX
    elif kind is FormatKind.PNG:
        flags[AlgoKind.METADATA] = True

    flags[AlgoKind.EOC] = kind is FormatKind.FLV and meta.video_tags > 0
    flags[AlgoKind.JUNK_CHUNK] = kind.is_avi

    return EligibilitySet(tuple(flags[algo] for algo in AlgoKind))


def suggest(session: "Session") -> EligibilitySet:
    """Compute and store the eligibility set of an insert session."""

    if session.mode is not Mode.INSERT:
        raise HostveilError(ErrorKind.SUGGESTION, "algorithms are only suggested when inserting")
    if session.descriptor.metadata is None:
        raise HostveilError(ErrorKind.SUGGESTION, "host has not been inspected")

    session.hidden_length = validate_hidden_length(session.hidden.size())
    offered = eligibility(session.descriptor, session.hidden_length)
    session.eligibility = offered
    logger.info(
        "Algorithms offered for %d bytes in %s host: %s",
        session.hidden_length,
        session.descriptor.format.value,
        ", ".join(algo.name for algo in offered) or "none",
    )
    return offered


def generate_password(length: int = PASSWORD_LENGTH, seed: Optional[int] = None) -> str:
    """Printable ASCII password drawn from a clock-seeded scrambler."""

    scrambler = Scrambler.from_seed(time.time_ns() if seed is None else seed)
    return "".join(chr(32 + scrambler.next() % 95) for _ in range(length))


def choose(session: "Session", algorithm: AlgoKind) -> None:
    """Select *algorithm*; generate a password when the user gave none."""

    if session.eligibility is None or algorithm not in session.eligibility:
        raise HostveilError(ErrorKind.ALGORITHM_NOT_OFFERED, algorithm.name)
    session.algorithm = algorithm

    if not session.password:
        session.password = generate_password()
        session.method = Method.WITHOUT_PASSWORD
        logger.info("No password given, a random one will be stored in the result")
    logger.info(f"Chosen algorithm: {algorithm.name}")
