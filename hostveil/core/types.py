"""Shared dataclasses and enums used across HOSTVEIL."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterator, Optional, Tuple, Union


class Mode(Enum):
    INSERT = "insert"
    EXTRACT = "extract"


class Method(IntEnum):
    """Whether the password was chosen by the user or generated."""

    WITHOUT_PASSWORD = 0
    WITH_PASSWORD = 1


class FormatKind(Enum):
    BMP_UNCOMPRESSED = "bmp"
    BMP_COMPRESSED = "bmp-compressed"
    PNG = "png"
    WAV_PCM = "wav"
    WAV_NO_PCM = "wav-no-pcm"
    MP3 = "mp3"
    AVI_UNCOMPRESSED = "avi"
    AVI_COMPRESSED = "avi-compressed"
    FLV = "flv"
    UNKNOWN = "unknown"

    @property
    def is_bmp(self) -> bool:
        return self in (FormatKind.BMP_UNCOMPRESSED, FormatKind.BMP_COMPRESSED)

    @property
    def is_avi(self) -> bool:
        return self in (FormatKind.AVI_UNCOMPRESSED, FormatKind.AVI_COMPRESSED)


class AlgoKind(IntEnum):
    """Embedding algorithms; the value is stored in the result signature."""

    LSB = 0
    EOF = 1
    METADATA = 2
    EOC = 3
    JUNK_CHUNK = 4

    @classmethod
    def from_name(cls, name: str) -> "AlgoKind":
        try:
            return cls[name.strip().upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown algorithm: {name}") from None


# ----------------------------------------------------------------------
# Per-format metadata (one variant per format)
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class BmpInfo:
    header_size: int
    data_size: int
    bits_per_pixel: int
    pixel_count: int


@dataclass(frozen=True)
class WavInfo:
    header_size: int
    data_size: int
    bits_per_sample: int


@dataclass(frozen=True)
class PngInfo:
    header_size: int
    data_size: int

    @property
    def file_size(self) -> int:
        return self.header_size + self.data_size

    @property
    def iend_offset(self) -> int:
        """Offset of the ``IEND`` chunk (length field included)."""

        return self.file_size - 12


@dataclass(frozen=True)
class FlvInfo:
    video_tags: int
    metadata_tags: int
    file_size: int


@dataclass(frozen=True)
class Mp3Info:
    first_frame: int
    frame_count: int
    eof: int


@dataclass(frozen=True)
class AviInfo:
    pass


FormatMetadata = Union[BmpInfo, WavInfo, PngInfo, FlvInfo, Mp3Info, AviInfo]


@dataclass
class HostDescriptor:
    format: FormatKind = FormatKind.UNKNOWN
    metadata: Optional[FormatMetadata] = None


@dataclass(frozen=True)
class EligibilitySet:
    """One flag per :class:`AlgoKind`, in enum order."""

    flags: Tuple[bool, ...] = field(default=(False,) * len(AlgoKind))

    def __post_init__(self) -> None:
        if len(self.flags) != len(AlgoKind):
            raise ValueError("EligibilitySet needs one flag per algorithm")

    def __getitem__(self, algo: AlgoKind) -> bool:
        return self.flags[int(algo)]

    def __contains__(self, algo: object) -> bool:
        return isinstance(algo, AlgoKind) and self.flags[int(algo)]

    def __iter__(self) -> Iterator[AlgoKind]:
        return (algo for algo in AlgoKind if self.flags[int(algo)])

    def __bool__(self) -> bool:
        return any(self.flags)


@dataclass(frozen=True)
class ResultSignature:
    """Trailer describing how to extract a hidden file from a result."""

    algorithm: AlgoKind
    hidden_length: int
    hidden_name: str
    method: Method
    password: Optional[str] = None
    offset: Optional[int] = None
