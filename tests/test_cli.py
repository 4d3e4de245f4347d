from __future__ import annotations

from pathlib import Path

import pytest

from hostveil.cli import main, parse_arguments


def test_hide_and_extract_commands(tmp_path: Path, make_bmp, make_payload, capsys) -> None:
    host = make_bmp()
    payload = make_payload(12, name="note.txt")
    stego = tmp_path / "stego.bmp"
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    assert main(["hide", "-c", str(host), "-p", str(payload), "-o", str(stego), "-a", "lsb", "--pw", "pw"]) == 0
    assert "Algorithm : LSB" in capsys.readouterr().out

    assert main(["extract", "-i", str(stego), "-o", str(out_dir), "--password", "pw"]) == 0
    assert (out_dir / "note.txt").read_bytes() == payload.read_bytes()


def test_hide_defaults_to_first_offered_algorithm(tmp_path: Path, make_flv, make_payload, capsys) -> None:
    host = make_flv()

    assert main(["hide", "-c", str(host), "-p", str(make_payload(20))]) == 0

    output = capsys.readouterr().out
    assert "Algorithm : EOF" in output
    assert "generated" in output
    assert (tmp_path / "cover_stego.flv").exists()


def test_suggest_command(make_wav, make_payload, capsys) -> None:
    assert main(["suggest", "-c", str(make_wav()), "-p", str(make_payload(10))]) == 0

    assert "Offered   : LSB, EOF" in capsys.readouterr().out


def test_errors_give_exit_code_one(tmp_path: Path, make_wav, make_payload, capsys) -> None:
    code = main(["hide", "-c", str(make_wav()), "-p", str(make_payload(10)), "-a", "eoc"])

    assert code == 1
    assert "not offered" in capsys.readouterr().out


def test_missing_file(tmp_path: Path, capsys) -> None:
    assert main(["extract", "-i", str(tmp_path / "nothing.bmp")]) == 1
    assert "Input file not found" in capsys.readouterr().out


def test_algorithm_names_are_validated() -> None:
    with pytest.raises(SystemExit):
        parse_arguments(["hide", "-c", "a", "-p", "b", "-a", "dct"])

    args = parse_arguments(["hide", "-c", "a", "-p", "b", "-a", "junk-chunk"])
    assert args.algorithm == "junk-chunk"
