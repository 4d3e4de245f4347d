"""
Public operation surface.

Insertion::

    with init(Choices(Mode.INSERT, host, result, hidden_path=payload)) as session:
        check_compatibility(session)
        offered = suggest_algo(session)
        choose_algo(session, AlgoKind.LSB)
        insert(session)

Extraction::

    with init(Choices(Mode.EXTRACT, stego, out_dir, password="pw")) as session:
        check_compatibility(session)
        detect_algo(session)
        extract(session, out_dir)

Every operation raises :class:`~hostveil.core.errors.HostveilError` on
failure; the session releases its streams when the ``with`` block exits.
"""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from hostveil.algorithms import EmbeddingContext, get_engine
from hostveil.config import ENGINE_SETTINGS
from hostveil.core import advisor
from hostveil.core.cursor import BinaryCursor
from hostveil.core.errors import ErrorKind, HostveilError, wrap_errors
from hostveil.core.scrambler import Scrambler
from hostveil.core.signature import read_signature
from hostveil.core.types import (
    AlgoKind,
    EligibilitySet,
    FormatKind,
    HostDescriptor,
    Method,
    Mode,
    ResultSignature,
)
from hostveil.formats import detect_format, inspect
from hostveil.utils.logger import log_operation, setup_logger

__all__ = [
    "Choices",
    "Session",
    "check_compatibility",
    "choose_algo",
    "detect_algo",
    "extract",
    "init",
    "insert",
    "suggest_algo",
]

logger = setup_logger(__name__)

PASSWORD_MAX_LENGTH = ENGINE_SETTINGS["password_max_length"]


def _ensure_path(path: Union[str, Path]) -> Path:
    if isinstance(path, Path):
        return path
    return Path(path)


@dataclass
class Choices:
    """What the caller asked for: mode, paths and optional password."""

    mode: Mode
    host_path: Union[str, Path]
    result_path: Union[str, Path]
    hidden_path: Optional[Union[str, Path]] = None
    password: Optional[str] = None


class Session:
    """State of one insert or extract run; owns every stream it opened."""

    def __init__(
        self,
        mode: Mode,
        host: BinaryCursor,
        *,
        hidden: Optional[BinaryCursor] = None,
        result: Optional[BinaryCursor] = None,
        result_dir: Optional[Path] = None,
        hidden_name: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        self.mode = mode
        self.host = host
        self.hidden = hidden
        self.result = result
        self.result_dir = result_dir
        self.hidden_name = hidden_name
        self.password = password
        self.method = Method.WITH_PASSWORD if password else Method.WITHOUT_PASSWORD
        self.algorithm: Optional[AlgoKind] = None
        self.hidden_length = 0
        self.descriptor = HostDescriptor()
        self.eligibility: Optional[EligibilitySet] = None
        self.scrambler: Optional[Scrambler] = None
        self.signature: Optional[ResultSignature] = None

    def close(self) -> None:
        for cursor in (self.host, self.hidden, self.result):
            if cursor is not None:
                cursor.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _open_cursor(path: Path, mode: str, kind: ErrorKind) -> BinaryCursor:
    try:
        return BinaryCursor(open(path, mode), name=str(path))
    except OSError as exc:
        raise HostveilError(kind, f"{path}: {exc.strerror or exc}") from exc


def _check_password(password: Optional[str]) -> None:
    if password is None:
        return
    if not password or len(password) > PASSWORD_MAX_LENGTH:
        raise HostveilError(
            ErrorKind.INVALID_PASSWORD,
            f"password must hold 1 to {PASSWORD_MAX_LENGTH} characters",
        )


def init(choices: Choices) -> Session:
    """Validate *choices* and open the streams of a new session."""

    _check_password(choices.password)
    host_path = _ensure_path(choices.host_path)
    result_path = _ensure_path(choices.result_path)

    with ExitStack() as stack:
        host = _open_cursor(host_path, "rb", ErrorKind.HOST_OPEN)
        stack.callback(host.close)

        if choices.mode is Mode.INSERT:
            if choices.hidden_path is None:
                raise HostveilError(ErrorKind.HIDDEN_OPEN, "no file to hide was given")
            hidden_path = _ensure_path(choices.hidden_path)
            hidden = _open_cursor(hidden_path, "rb", ErrorKind.HIDDEN_OPEN)
            stack.callback(hidden.close)
            # opening the result truncates it; it must not be one of the inputs
            if result_path.resolve() in (host_path.resolve(), hidden_path.resolve()):
                raise HostveilError(
                    ErrorKind.RESULT_INSERT_OPEN,
                    f"{result_path}: result would overwrite an input file",
                )
            result = _open_cursor(result_path, "wb", ErrorKind.RESULT_INSERT_OPEN)
            stack.callback(result.close)
            session = Session(
                Mode.INSERT,
                host,
                hidden=hidden,
                result=result,
                hidden_name=hidden_path.name,
                password=choices.password,
            )
        else:
            if not result_path.is_dir():
                raise HostveilError(ErrorKind.RESULT_EXTRACT_OPEN, str(result_path))
            session = Session(Mode.EXTRACT, host, result_dir=result_path, password=choices.password)

        stack.pop_all()

    logger.debug("Opened %s session on %s", session.mode.value, host_path)
    return session


def check_compatibility(session: Session) -> FormatKind:
    """Detect the host format; unrecognised hosts are rejected."""

    with wrap_errors(ErrorKind.CHECK_COMPATIBILITY):
        kind = detect_format(session.host)
    if kind is FormatKind.UNKNOWN:
        raise HostveilError(ErrorKind.CHECK_COMPATIBILITY, f"{session.host.name}: unrecognised host format")
    session.descriptor.format = kind
    logger.info(f"Host format: {kind.value}")
    return kind


def suggest_algo(session: Session) -> EligibilitySet:
    """Inspect the host and return the algorithms able to carry the payload."""

    with wrap_errors(ErrorKind.SUGGESTION):
        if session.descriptor.format is FormatKind.UNKNOWN:
            raise HostveilError(ErrorKind.SUGGESTION, "host format has not been checked")
        session.descriptor.metadata = inspect(session.descriptor.format, session.host, Mode.INSERT)
        return advisor.suggest(session)


def choose_algo(session: Session, algorithm: AlgoKind) -> None:
    advisor.choose(session, algorithm)


@log_operation("Detect Algorithm")
def detect_algo(session: Session) -> ResultSignature:
    """Read the result signature and configure the session for extraction."""

    if session.mode is not Mode.EXTRACT:
        raise HostveilError(ErrorKind.DETECTION, "algorithm detection only runs when extracting")

    with wrap_errors(ErrorKind.DETECTION):
        if session.descriptor.format is FormatKind.UNKNOWN:
            raise HostveilError(ErrorKind.DETECTION, "host format has not been checked")
        signature, scrambler = read_signature(session.host, session.password)

        limit = signature.offset
        if signature.algorithm is AlgoKind.EOF:
            limit -= signature.hidden_length
        if limit < 0:
            raise HostveilError(ErrorKind.DETECTION, "declared hidden length exceeds the file size")

        session.signature = signature
        session.scrambler = scrambler
        session.algorithm = signature.algorithm
        session.hidden_length = signature.hidden_length
        session.hidden_name = signature.hidden_name
        session.method = signature.method
        session.password = signature.password

        # the inspectors must not see the signature (or an appended payload)
        session.host.limit = limit
        session.descriptor.metadata = inspect(session.descriptor.format, session.host, Mode.EXTRACT)

    logger.info(
        f"Detected {signature.algorithm.name} carrying {signature.hidden_length} bytes "
        f"({signature.hidden_name})"
    )
    return signature


def insert(session: Session) -> None:
    """Write the result file: host, embedded payload and signature."""

    if session.mode is not Mode.INSERT:
        raise HostveilError(ErrorKind.INSERTION, "session was not opened for insertion")
    if session.algorithm is None:
        raise HostveilError(ErrorKind.INSERTION, "no algorithm has been chosen")

    with wrap_errors(ErrorKind.INSERTION):
        session.scrambler = Scrambler.from_password(session.password)
        signature = ResultSignature(
            algorithm=session.algorithm,
            hidden_length=session.hidden_length,
            hidden_name=session.hidden_name,
            method=session.method,
            password=session.password if session.method is Method.WITHOUT_PASSWORD else None,
        )
        context = EmbeddingContext(
            host=session.host,
            result=session.result,
            descriptor=session.descriptor,
            scrambler=session.scrambler,
            hidden_length=session.hidden_length,
            hidden=session.hidden,
            signature=signature,
        )
        get_engine(session.algorithm).insert(context)
        session.result.flush()
        session.signature = signature


def extract(session: Session, result_path: Optional[Union[str, Path]] = None) -> Path:
    """Recover the hidden file into the *result_path* directory; return its path."""

    if session.signature is None:
        raise HostveilError(ErrorKind.EXTRACTION, "no hidden data has been detected")

    directory = _ensure_path(result_path) if result_path is not None else session.result_dir
    if directory is None or not directory.is_dir():
        raise HostveilError(ErrorKind.RESULT_EXTRACT_OPEN, str(directory))
    target = directory / session.hidden_name

    with wrap_errors(ErrorKind.EXTRACTION):
        with open(target, "wb") as handle:
            result = BinaryCursor(handle, name=str(target))
            context = EmbeddingContext(
                host=session.host,
                result=result,
                descriptor=session.descriptor,
                scrambler=session.scrambler,
                hidden_length=session.hidden_length,
                signature=session.signature,
            )
            get_engine(session.algorithm).extract(context)

    logger.info(f"Hidden file written to {target}")
    return target
