"""Result signature appended at the very end of every result file.

Layout (read backwards from the end of the file)::

    [hidden name, masked][password, only when generated][footer][magic]

The footer is ``>BBIHH``: algorithm, method, hidden length, name length and
stored password length.
"""

from __future__ import annotations

import os
import struct
from typing import Optional, Tuple

from hostveil.config import SIGNATURE_SETTINGS
from hostveil.core.cursor import BinaryCursor
from hostveil.core.errors import ErrorKind, HostveilError
from hostveil.core.scrambler import Scrambler
from hostveil.core.types import AlgoKind, Method, ResultSignature

__all__ = [
    "SIGNATURE_MAGIC",
    "build_signature",
    "read_signature",
    "write_signature",
]

SIGNATURE_MAGIC = SIGNATURE_SETTINGS["magic"]
_FOOTER_STRUCT = struct.Struct(">BBIHH")
_TRAILER_SIZE = _FOOTER_STRUCT.size + len(SIGNATURE_MAGIC)


def _encode_name(name: str) -> bytes:
    encoded = os.path.basename(name).encode("utf-8")
    if len(encoded) > 0xFFFF:
        raise ValueError("hidden file name is too long (at most 65535 UTF-8 bytes)")
    return encoded


def build_signature(signature: ResultSignature, scrambler: Scrambler) -> bytes:
    """Return the binary trailer; the name is masked with a rewound *scrambler*."""

    name_bytes = scrambler.reseed().mask(_encode_name(signature.hidden_name))
    if signature.method is Method.WITHOUT_PASSWORD:
        if not signature.password:
            raise ValueError("a generated password must be stored in the signature")
        password_bytes = signature.password.encode("utf-8")
    else:
        password_bytes = b""
    if len(password_bytes) > 0xFFFF:
        raise ValueError("stored password is too long")

    footer = _FOOTER_STRUCT.pack(
        int(signature.algorithm),
        int(signature.method),
        signature.hidden_length,
        len(name_bytes),
        len(password_bytes),
    )
    return name_bytes + password_bytes + footer + SIGNATURE_MAGIC


def write_signature(result: BinaryCursor, signature: ResultSignature, scrambler: Scrambler) -> None:
    try:
        result.write(build_signature(signature, scrambler))
        result.flush()
    except (HostveilError, ValueError) as exc:
        raise HostveilError(ErrorKind.INSERTION, f"cannot write the result signature ({exc})") from exc


def read_signature(
    cursor: BinaryCursor, password: Optional[str] = None
) -> Tuple[ResultSignature, Scrambler]:
    """Parse the trailer at the end of *cursor*.

    A password stored in the signature takes precedence over *password*.
    Returns the signature (``offset`` is the first signature byte) together
    with the scrambler keyed by the password in effect.
    """

    size = cursor.size()
    if size < _TRAILER_SIZE:
        raise HostveilError(ErrorKind.DETECTION, "file is too small to hold a signature")

    trailer = cursor.read_at(size - _TRAILER_SIZE, _TRAILER_SIZE)
    if trailer[_FOOTER_STRUCT.size:] != SIGNATURE_MAGIC:
        raise HostveilError(ErrorKind.DETECTION, "no hidden data signature found")

    algo_id, method_id, hidden_length, name_length, password_length = _FOOTER_STRUCT.unpack(
        trailer[:_FOOTER_STRUCT.size]
    )
    try:
        algorithm = AlgoKind(algo_id)
        method = Method(method_id)
    except ValueError as exc:
        raise HostveilError(ErrorKind.DETECTION, f"corrupted signature ({exc})") from exc

    offset = size - _TRAILER_SIZE - name_length - password_length
    if offset < 0:
        raise HostveilError(ErrorKind.DETECTION, "signature lengths exceed the file size")
    masked_name = cursor.read_at(offset, name_length)

    if method is Method.WITHOUT_PASSWORD:
        try:
            password = cursor.read(password_length).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise HostveilError(ErrorKind.DETECTION, "stored password is not UTF-8") from exc
    elif not password:
        raise HostveilError(ErrorKind.PASSWORD_REQUIRED)

    scrambler = Scrambler.from_password(password)
    try:
        name = os.path.basename(scrambler.reseed().mask(masked_name).decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise HostveilError(ErrorKind.DETECTION, "hidden file name is unreadable (wrong password?)") from exc

    signature = ResultSignature(
        algorithm=algorithm,
        hidden_length=hidden_length,
        hidden_name=name or "hidden.bin",
        method=method,
        password=password,
        offset=offset,
    )
    return signature, scrambler
