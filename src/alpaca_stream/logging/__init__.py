"""Logging helpers."""

from .logger import StreamLogger, setup_logger

__all__ = ["StreamLogger", "setup_logger"]
