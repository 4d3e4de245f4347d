"""HOSTVEIL: hide files inside media hosts and get them back."""

from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any

from hostveil.config import APP_VERSION as __version__

__all__ = [
    "AlgoKind",
    "Choices",
    "ErrorKind",
    "FormatKind",
    "HostveilError",
    "Mode",
    "Session",
    "check_compatibility",
    "choose_algo",
    "detect_algo",
    "extract",
    "init",
    "insert",
    "suggest_algo",
]

_SESSION_NAMES = {
    "Choices",
    "Session",
    "check_compatibility",
    "choose_algo",
    "detect_algo",
    "extract",
    "init",
    "insert",
    "suggest_algo",
}


if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .core.errors import ErrorKind, HostveilError
    from .core.types import AlgoKind, FormatKind, Mode
    from .session import (
        Choices,
        Session,
        check_compatibility,
        choose_algo,
        detect_algo,
        extract,
        init,
        insert,
        suggest_algo,
    )


def __getattr__(name: str) -> Any:
    if name in _SESSION_NAMES:
        return getattr(import_module(".session", __name__), name)
    if name in {"ErrorKind", "HostveilError"}:
        return getattr(import_module(".core.errors", __name__), name)
    if name in {"AlgoKind", "FormatKind", "Mode"}:
        return getattr(import_module(".core.types", __name__), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
