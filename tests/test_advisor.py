from __future__ import annotations

from pathlib import Path

import pytest

from conftest import build_avi
from hostveil.core import advisor
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.types import (
    AlgoKind,
    BmpInfo,
    FlvInfo,
    FormatKind,
    HostDescriptor,
    Method,
    Mode,
    Mp3Info,
    PngInfo,
    WavInfo,
)
from hostveil.session import Choices, check_compatibility, choose_algo, init, suggest_algo

SMALL_BMP = HostDescriptor(FormatKind.BMP_UNCOMPRESSED, BmpInfo(54, 768, 24, 256))


def _open(tmp_path: Path, host: Path, payload: Path, password=None):
    choices = Choices(Mode.INSERT, host, tmp_path / "out.bin", hidden_path=payload, password=password)
    session = init(choices)
    check_compatibility(session)
    return session


def test_lsb_capacity_rules() -> None:
    assert advisor.lsb_capacity_bits(SMALL_BMP) == 24 * 256 // 8 // 4
    assert advisor.lsb_capacity_bits(HostDescriptor(FormatKind.WAV_PCM, WavInfo(44, 4410, 16))) == 2205 * 2
    assert advisor.lsb_capacity_bits(HostDescriptor(FormatKind.MP3, Mp3Info(0, 40, 16680))) == 120
    palette = HostDescriptor(FormatKind.BMP_UNCOMPRESSED, BmpInfo(1078, 256, 8, 256))
    assert advisor.lsb_capacity_bits(palette) is None
    assert advisor.lsb_capacity_bits(HostDescriptor(FormatKind.PNG, PngInfo(33, 100))) is None


def test_lsb_capacity_is_monotonic() -> None:
    flags = [advisor.eligibility(SMALL_BMP, length)[AlgoKind.LSB] for length in range(1, 60)]

    # once the payload no longer fits, larger payloads never fit again
    assert flags == sorted(flags, reverse=True)
    assert flags.index(False) == 24


def test_eligibility_per_format() -> None:
    def offered(kind, meta, length=10):
        return set(advisor.eligibility(HostDescriptor(kind, meta), length))

    assert offered(FormatKind.BMP_UNCOMPRESSED, SMALL_BMP.metadata) == {
        AlgoKind.LSB,
        AlgoKind.EOF,
        AlgoKind.METADATA,
    }
    assert offered(FormatKind.BMP_COMPRESSED, BmpInfo(54, 500, 8, 256)) == {AlgoKind.EOF, AlgoKind.METADATA}
    assert offered(FormatKind.PNG, PngInfo(33, 100)) == {AlgoKind.EOF, AlgoKind.METADATA}
    assert offered(FormatKind.WAV_NO_PCM, WavInfo(44, 4000, 32)) == {AlgoKind.EOF}
    assert offered(FormatKind.FLV, FlvInfo(3, 1, 500)) == {AlgoKind.EOF, AlgoKind.EOC}
    assert offered(FormatKind.FLV, FlvInfo(0, 1, 500)) == {AlgoKind.EOF}
    assert offered(FormatKind.AVI_COMPRESSED, None) == {AlgoKind.JUNK_CHUNK}
    assert offered(FormatKind.MP3, Mp3Info(0, 40, 16680), length=15) == {AlgoKind.LSB, AlgoKind.EOF}
    assert offered(FormatKind.MP3, Mp3Info(0, 40, 16680), length=16) == {AlgoKind.EOF}


def test_bmp_metadata_ceiling() -> None:
    meta = BmpInfo(1000, 768, 24, 256)
    limit = advisor.BMP_METADATA_MAX - 2 * 1000

    assert AlgoKind.METADATA in advisor.eligibility(HostDescriptor(FormatKind.BMP_UNCOMPRESSED, meta), limit)
    assert AlgoKind.METADATA not in advisor.eligibility(
        HostDescriptor(FormatKind.BMP_UNCOMPRESSED, meta), limit + 1
    )


@pytest.mark.parametrize(
    ("size", "kind"),
    [(0, ErrorKind.HIDDEN_EMPTY), (2 ** 32 - 1, ErrorKind.HIDDEN_LENGTH), (2 ** 32, ErrorKind.HIDDEN_LENGTH)],
)
def test_hidden_length_bounds(size: int, kind: ErrorKind) -> None:
    with pytest.raises(HostveilError) as excinfo:
        advisor.validate_hidden_length(size)
    assert excinfo.value.kind is kind


def test_suggest_rejects_empty_payload(tmp_path: Path, make_bmp, make_payload) -> None:
    with _open(tmp_path, make_bmp(), make_payload(0)) as session:
        with pytest.raises(HostveilError) as excinfo:
            suggest_algo(session)
    assert excinfo.value.kind is ErrorKind.HIDDEN_EMPTY


def test_suggest_reports_offered_algorithms(tmp_path: Path, make_wav, make_payload) -> None:
    with _open(tmp_path, make_wav(), make_payload(100)) as session:
        offered = suggest_algo(session)

        assert set(offered) == {AlgoKind.LSB, AlgoKind.EOF}
        assert session.hidden_length == 100
        assert session.eligibility is offered


def test_choose_unoffered_algorithm(tmp_path: Path, make_wav, make_payload) -> None:
    with _open(tmp_path, make_wav(), make_payload(10)) as session:
        suggest_algo(session)
        with pytest.raises(HostveilError) as excinfo:
            choose_algo(session, AlgoKind.EOC)
    assert excinfo.value.kind is ErrorKind.ALGORITHM_NOT_OFFERED


def test_choose_before_suggest(tmp_path: Path, make_wav, make_payload) -> None:
    with _open(tmp_path, make_wav(), make_payload(10)) as session:
        with pytest.raises(HostveilError) as excinfo:
            choose_algo(session, AlgoKind.LSB)
    assert excinfo.value.kind is ErrorKind.ALGORITHM_NOT_OFFERED


def test_choose_generates_password(tmp_path: Path, make_wav, make_payload) -> None:
    with _open(tmp_path, make_wav(), make_payload(10)) as session:
        suggest_algo(session)
        choose_algo(session, AlgoKind.LSB)

        assert session.algorithm is AlgoKind.LSB
        assert session.method is Method.WITHOUT_PASSWORD
        assert len(session.password) == advisor.PASSWORD_LENGTH
        assert all(32 <= ord(char) <= 126 for char in session.password)


def test_choose_keeps_user_password(tmp_path: Path, make_wav, make_payload) -> None:
    with _open(tmp_path, make_wav(), make_payload(10), password="pw") as session:
        suggest_algo(session)
        choose_algo(session, AlgoKind.EOF)

        assert session.password == "pw"
        assert session.method is Method.WITH_PASSWORD


def test_generated_password_depends_on_seed() -> None:
    assert advisor.generate_password(seed=1) == advisor.generate_password(seed=1)
    assert advisor.generate_password(seed=1) != advisor.generate_password(seed=2)


def test_avi_only_offers_junk_chunk(tmp_path: Path, make_payload) -> None:
    host = tmp_path / "cover.avi"
    host.write_bytes(build_avi())

    with _open(tmp_path, host, make_payload(10)) as session:
        assert set(suggest_algo(session)) == {AlgoKind.JUNK_CHUNK}


def test_palette_bmp_is_not_lsb_eligible(tmp_path: Path, make_bmp, make_payload) -> None:
    with _open(tmp_path, make_bmp(palette=True), make_payload(4)) as session:
        offered = suggest_algo(session)

        assert session.descriptor.metadata.bits_per_pixel == 8
        assert set(offered) == {AlgoKind.EOF, AlgoKind.METADATA}
