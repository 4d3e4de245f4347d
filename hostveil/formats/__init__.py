"""Host format detection and inspection."""

from __future__ import annotations

from hostveil.core.cursor import BinaryCursor
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.types import FormatKind, FormatMetadata, Mode
from hostveil.utils.logger import setup_logger

from . import avi, bmp, flv, mp3, png, wav

__all__ = ["InspectionError", "detect_format", "inspect"]

logger = setup_logger(__name__)

# order matters: MP3 detection accepts a bare frame sync so it goes last
_DETECTORS = (bmp.detect, png.detect, wav.detect, avi.detect, flv.detect, mp3.detect)


class InspectionError(HostveilError):
    """The host could not be walked; no partial metadata is returned."""

    def __init__(self, detail: str) -> None:
        super().__init__(ErrorKind.READ, detail)


def detect_format(cursor: BinaryCursor) -> FormatKind:
    """Identify the container format of *cursor*."""

    for detector in _DETECTORS:
        kind = detector(cursor)
        if kind is not FormatKind.UNKNOWN:
            logger.debug("Detected %s host format", kind.value)
            return kind
    return FormatKind.UNKNOWN


def inspect(kind: FormatKind, cursor: BinaryCursor, mode: Mode = Mode.INSERT) -> FormatMetadata:
    """Extract the structural metadata the algorithms need from *cursor*."""

    try:
        if kind.is_bmp:
            metadata = bmp.inspect(cursor)
        elif kind is FormatKind.PNG:
            metadata = png.inspect(cursor)
        elif kind in (FormatKind.WAV_PCM, FormatKind.WAV_NO_PCM):
            metadata = wav.inspect(cursor)
        elif kind is FormatKind.FLV:
            metadata = flv.inspect(cursor, mode)
        elif kind is FormatKind.MP3:
            metadata = mp3.inspect(cursor)
        elif kind.is_avi:
            metadata = avi.inspect(cursor)
        else:
            raise ValueError(f"unsupported host format {kind.value}")
    except (HostveilError, ValueError) as exc:
        raise InspectionError(f"{cursor.name}: {exc}") from exc

    logger.debug("Inspected %s host: %s", kind.value, metadata)
    return metadata
