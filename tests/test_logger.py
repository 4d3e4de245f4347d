from __future__ import annotations

import logging
from pathlib import Path

import pytest

from hostveil import session as api
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.types import Mode
from hostveil.utils.logger import log_operation


@log_operation("Sample Step")
def _double(value: int) -> int:
    return value * 2


@log_operation("Broken Step")
def _fail() -> None:
    raise ValueError("boom")


def test_log_operation_records_start_and_completion(caplog) -> None:
    caplog.set_level(logging.INFO)

    assert _double(21) == 42
    messages = [record.getMessage() for record in caplog.records]
    assert messages == ["[Sample Step] Started", "[Sample Step] Completed"]
    assert _double.__name__ == "_double"


def test_log_operation_logs_failure_and_reraises(caplog) -> None:
    caplog.set_level(logging.INFO)

    with pytest.raises(ValueError):
        _fail()
    failures = [record for record in caplog.records if record.levelno == logging.ERROR]
    assert [record.getMessage() for record in failures] == ["[Broken Step] FAILED: boom"]


def test_failed_detection_is_logged(tmp_path: Path, make_bmp, caplog) -> None:
    caplog.set_level(logging.INFO)

    with api.init(api.Choices(Mode.EXTRACT, make_bmp(), tmp_path)) as session:
        api.check_compatibility(session)
        with pytest.raises(HostveilError) as excinfo:
            api.detect_algo(session)
    assert excinfo.value.kind is ErrorKind.DETECTION
    assert any(
        record.levelno == logging.ERROR and record.getMessage().startswith("[Detect Algorithm] FAILED")
        for record in caplog.records
    )
