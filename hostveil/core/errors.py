"""Error kinds raised by the public operations."""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional


class ErrorKind(Enum):
    """Every failure surfaced to a caller belongs to exactly one kind."""

    HOST_OPEN = "cannot open the host file for reading"
    HIDDEN_OPEN = "cannot open the file to hide for reading"
    INVALID_PASSWORD = "invalid password"
    RESULT_EXTRACT_OPEN = "the extraction result path must be a directory"
    RESULT_INSERT_OPEN = "cannot open the result file for writing"
    READ = "read error"
    CHECK_COMPATIBILITY = "file compatibility check failed"
    SUGGESTION = "algorithm suggestion failed"
    ALGORITHM_NOT_OFFERED = "the chosen algorithm is not offered for this host"
    INSERTION = "insertion failed"
    EXTRACTION = "extraction failed"
    DETECTION = "steganography algorithm detection failed"
    HIDDEN_LENGTH = "the file to hide is too large"
    HIDDEN_EMPTY = "the hidden file is empty"
    PASSWORD_REQUIRED = "a password is required to extract the data"
    OTHER = "unknown error"

    @property
    def description(self) -> str:
        return self.value


class HostveilError(Exception):
    """Raised by every public operation on failure."""

    def __init__(self, kind: ErrorKind, detail: Optional[str] = None) -> None:
        self.kind = kind
        self.detail = detail
        message = kind.description if not detail else f"{kind.description}: {detail}"
        super().__init__(message)


class CursorError(HostveilError):
    """Low-level positioned read/seek/write failure."""

    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(ErrorKind.READ, detail)


@contextmanager
def wrap_errors(kind: ErrorKind) -> Iterator[None]:
    """Re-raise stream-level failures as ``kind``.

    Domain errors that already carry a specific kind pass through untouched.
    """

    try:
        yield
    except HostveilError as exc:
        if exc.kind in (ErrorKind.READ, ErrorKind.OTHER):
            raise HostveilError(kind, exc.detail) from exc
        raise
    except (OSError, ValueError) as exc:
        raise HostveilError(kind, str(exc)) from exc


__all__ = ["CursorError", "ErrorKind", "HostveilError", "wrap_errors"]
