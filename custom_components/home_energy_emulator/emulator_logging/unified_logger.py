"""Structured event logger.

Every log call names an event and carries keyword context:

    logger.debug("BATTERY_STORED", charge_wh=51.2, elapsed_s=1.0)

which is rendered as ``BATTERY_STORED | charge_wh=51.2 | elapsed_s=1.0`` on the
standard logging hierarchy, so Home Assistant's logger configuration applies.
A rotating debug file can be switched on at runtime.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

_LOGGER = logging.getLogger(__name__)


class EmulatorLogger:
    """Event-style logger with an optional rotating debug file."""

    # Log levels
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"

    _LEVELS = {
        CRITICAL: logging.CRITICAL,
        ERROR: logging.ERROR,
        WARNING: logging.WARNING,
        INFO: logging.INFO,
        DEBUG: logging.DEBUG,
    }

    def __init__(
        self,
        name: str = "engine",
        log_dir: Path | None = None,
        file_logging_enabled: bool = False,
        max_file_size_mb: int = 5,
        backup_count: int = 3,
    ) -> None:
        """Initialize the logger.

        Args:
            name: Logger name, appended to the integration logger
            log_dir: Directory for the debug file (default: component directory/log)
            file_logging_enabled: Whether to start with file logging on
            max_file_size_mb: Max size of the rotating log file
            backup_count: Number of backup files to keep
        """
        self.name = name
        self._max_file_size_mb = max_file_size_mb
        self._backup_count = backup_count

        if log_dir is None:
            log_dir = Path(__file__).parent.parent / "log"
        self.log_dir = log_dir
        self._log_file = self.log_dir / "home_energy_emulator.log"

        self._logger = logging.getLogger(f"custom_components.home_energy_emulator.{name}")
        self._file_handler: RotatingFileHandler | None = None
        self._file_logging_enabled = False

        if file_logging_enabled:
            self.set_file_logging(True)

    def _attach_file_handler(self) -> None:
        """Create the rotating file handler and attach it."""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size_mb * 1024 * 1024,
                backupCount=self._backup_count,
                encoding="utf-8",
                delay=True,
            )
        except OSError as ex:
            _LOGGER.error("Failed to set up file handler: %s", ex)
            return

        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler.setLevel(logging.DEBUG)
        self._logger.addHandler(handler)
        self._file_handler = handler

    def _detach_file_handler(self) -> None:
        """Detach and close the file handler."""
        if self._file_handler is None:
            return
        self._logger.removeHandler(self._file_handler)
        self._file_handler.close()
        self._file_handler = None

    @staticmethod
    def format_message(event: str, data: dict[str, Any]) -> str:
        """Render an event and its context as a single line."""
        if not data:
            return event
        data_str = " | ".join(f"{k}={v}" for k, v in data.items())
        return f"{event} | {data_str}"

    def log(self, level: str, event: str, **data: Any) -> None:
        """Log an event at the given level.

        Args:
            level: Log level (critical, error, warning, info, debug)
            event: Event name (e.g., "HEARTBEAT_FAILED", "GENERATOR_STORED")
            **data: Additional context data
        """
        numeric_level = self._LEVELS.get(level, logging.DEBUG)
        if self._logger.isEnabledFor(numeric_level):
            self._logger.log(numeric_level, self.format_message(event, data))

    def critical(self, event: str, **data: Any) -> None:
        """Log critical event."""
        self.log(self.CRITICAL, event, **data)

    def error(self, event: str, **data: Any) -> None:
        """Log error event."""
        self.log(self.ERROR, event, **data)

    def warning(self, event: str, **data: Any) -> None:
        """Log warning event."""
        self.log(self.WARNING, event, **data)

    def info(self, event: str, **data: Any) -> None:
        """Log info event."""
        self.log(self.INFO, event, **data)

    def debug(self, event: str, **data: Any) -> None:
        """Log debug event."""
        self.log(self.DEBUG, event, **data)

    def separator(self, title: str = "") -> None:
        """Log a visual separator."""
        if title:
            sep = f"{'=' * 20} {title} {'=' * 20}"
        else:
            sep = "=" * 60
        self.debug(sep)

    def set_file_logging(self, enabled: bool) -> None:
        """Enable or disable the rotating debug file."""
        if enabled == self._file_logging_enabled:
            return

        if enabled:
            self._attach_file_handler()
            self._file_logging_enabled = self._file_handler is not None
        else:
            self._detach_file_handler()
            self._file_logging_enabled = False

        self.info("FILE_LOGGING_CHANGED", enabled=self._file_logging_enabled)

    @property
    def file_logging_enabled(self) -> bool:
        """Check if file logging is enabled."""
        return self._file_logging_enabled

    @property
    def log_file(self) -> Path:
        """Path of the current debug file."""
        return self._log_file

    def get_total_size_kb(self) -> float:
        """Get total size of all debug log files in KB.

        Note: This method does blocking I/O - call from executor if in async context.
        """
        total = 0
        try:
            for log_file in self.log_dir.glob("*.log*"):
                total += log_file.stat().st_size
        except OSError:
            return 0.0
        return round(total / 1024, 2)


# Singleton instance
_logger_instance: EmulatorLogger | None = None


def get_logger() -> EmulatorLogger:
    """Get or create the singleton logger instance."""
    global _logger_instance
    if _logger_instance is None:
        _logger_instance = EmulatorLogger()
    return _logger_instance
