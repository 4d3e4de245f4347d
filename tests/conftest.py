from __future__ import annotations

import math
import wave
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np
import pytest
from PIL import Image

from hostveil.core.types import AlgoKind, Mode
from hostveil.session import (
    Choices,
    check_compatibility,
    choose_algo,
    detect_algo,
    extract,
    init,
    insert,
    suggest_algo,
)

MP3_HEADER = 0xFFFB9064  # MPEG-1 Layer III, 128 kbps, 44.1 kHz, no padding
MP3_FRAME_LENGTH = 417


def build_flv(tags: Iterable[Tuple[int, bytes]]) -> bytes:
    """FLV header, PreviousTagSize0 and one record per ``(type, data)``."""

    out = bytearray(b"FLV\x01\x05" + (9).to_bytes(4, "big") + (0).to_bytes(4, "big"))
    for tag_type, data in tags:
        out += bytes([tag_type]) + len(data).to_bytes(3, "big")
        out += b"\x00\x00\x00\x00"  # timestamp + extension
        out += b"\x00\x00\x00"  # stream id
        out += data
        out += (11 + len(data)).to_bytes(4, "big")
    return bytes(out)


def build_mp3(frame_count: int, *, id3v1: bool = False) -> bytes:
    frame = MP3_HEADER.to_bytes(4, "big") + bytes(range(256)) * 2
    frame = frame[:MP3_FRAME_LENGTH]
    data = frame * frame_count
    if id3v1:
        data += b"TAG" + b"\x20" * 125
    return data


def build_avi(compression: bytes = b"\x00\x00\x00\x00") -> bytes:
    bitmap_info = (
        (40).to_bytes(4, "little")
        + (16).to_bytes(4, "little")
        + (16).to_bytes(4, "little")
        + (1).to_bytes(2, "little")
        + (24).to_bytes(2, "little")
        + compression
        + bytes(20)
    )
    strf = b"strf" + len(bitmap_info).to_bytes(4, "little") + bitmap_info
    hdrl = b"LIST" + (4 + len(strf)).to_bytes(4, "little") + b"hdrl" + strf
    body = b"AVI " + hdrl
    return b"RIFF" + len(body).to_bytes(4, "little") + body


def build_wav(format_tag: int, bits_per_sample: int, data: bytes) -> bytes:
    """Minimal RIFF/WAVE with a 16-byte ``fmt `` chunk and one ``data`` chunk."""

    fmt = (
        format_tag.to_bytes(2, "little")
        + (1).to_bytes(2, "little")
        + (8000).to_bytes(4, "little")
        + (4000).to_bytes(4, "little")
        + (256).to_bytes(2, "little")
        + bits_per_sample.to_bytes(2, "little")
    )
    body = b"WAVE" + b"fmt " + len(fmt).to_bytes(4, "little") + fmt
    body += b"data" + len(data).to_bytes(4, "little") + data
    return b"RIFF" + len(body).to_bytes(4, "little") + body


def _noise(width: int, height: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


@pytest.fixture
def make_bmp(tmp_path: Path) -> Callable[..., Path]:
    def _make(width: int = 16, height: int = 16, *, name: str = "cover.bmp", palette: bool = False) -> Path:
        path = tmp_path / name
        image = Image.fromarray(_noise(width, height))
        if palette:
            image = image.convert("P")
        image.save(path, format="BMP")
        return path

    return _make


@pytest.fixture
def make_png(tmp_path: Path) -> Callable[..., Path]:
    def _make(width: int = 16, height: int = 16, *, name: str = "cover.png") -> Path:
        path = tmp_path / name
        Image.fromarray(_noise(width, height)).save(path, format="PNG")
        return path

    return _make


@pytest.fixture
def make_wav(tmp_path: Path) -> Callable[..., Path]:
    def _make(duration: float = 0.05, *, name: str = "cover.wav") -> Path:
        path = tmp_path / name
        sample_rate = 44100
        total_samples = int(sample_rate * duration)
        amplitude = 16000

        with wave.open(str(path), "wb") as wav:
            wav.setnchannels(1)
            wav.setsampwidth(2)
            wav.setframerate(sample_rate)
            wav.setcomptype("NONE", "not compressed")

            frames = bytearray()
            for index in range(total_samples):
                value = int(amplitude * math.sin(2 * math.pi * 440 * index / sample_rate))
                frames += int(value).to_bytes(2, byteorder="little", signed=True)

            wav.writeframes(bytes(frames))
        return path

    return _make


@pytest.fixture
def make_flv(tmp_path: Path) -> Callable[..., Path]:
    def _make(tags: List[Tuple[int, bytes]] = None, *, name: str = "cover.flv") -> Path:
        if tags is None:
            tags = [(18, b"onMetaData")]
            for index in range(6):
                tags.append((9, bytes([index]) * (20 + index)))
                tags.append((8, b"\xaf\x01" + bytes(10)))
        path = tmp_path / name
        path.write_bytes(build_flv(tags))
        return path

    return _make


@pytest.fixture
def make_mp3(tmp_path: Path) -> Callable[..., Path]:
    def _make(frame_count: int = 40, *, id3v1: bool = True, name: str = "cover.mp3") -> Path:
        path = tmp_path / name
        path.write_bytes(build_mp3(frame_count, id3v1=id3v1))
        return path

    return _make


@pytest.fixture
def make_payload(tmp_path: Path) -> Callable[..., Path]:
    def _make(size: int, *, name: str = "secret.bin") -> Path:
        path = tmp_path / name
        path.write_bytes(bytes((index * 37 + 11) % 256 for index in range(size)))
        return path

    return _make


class StegoRunner:
    """Drives the public operations the way a front end would."""

    def __init__(self, workdir: Path) -> None:
        self.workdir = workdir

    def hide(
        self,
        host: Path,
        payload: Path,
        algorithm: AlgoKind,
        *,
        password: Optional[str] = None,
        output: Optional[Path] = None,
    ) -> Path:
        output = output or self.workdir / f"stego{host.suffix}"
        choices = Choices(Mode.INSERT, host, output, hidden_path=payload, password=password)
        with init(choices) as session:
            check_compatibility(session)
            suggest_algo(session)
            choose_algo(session, algorithm)
            insert(session)
        return output

    def reveal(self, stego: Path, *, password: Optional[str] = None) -> Path:
        out_dir = self.workdir / "recovered"
        out_dir.mkdir(exist_ok=True)
        with init(Choices(Mode.EXTRACT, stego, out_dir, password=password)) as session:
            check_compatibility(session)
            detect_algo(session)
            return extract(session, out_dir)


@pytest.fixture
def runner(tmp_path: Path) -> StegoRunner:
    return StegoRunner(tmp_path)
