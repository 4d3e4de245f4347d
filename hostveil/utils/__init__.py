"""Utility helpers for HOSTVEIL."""

from .logger import log_operation, setup_logger

__all__ = ["log_operation", "setup_logger"]
