"""Unified logging module for the Home Energy Emulator."""

from .unified_logger import EmulatorLogger, get_logger

__all__ = ["EmulatorLogger", "get_logger"]
