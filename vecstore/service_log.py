"""File-based logger for the service process."""

from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from types import TracebackType

__all__ = ["ServiceLogger", "LOG_FILE_NAME"]

LOG_FILE_NAME = "helpdesk.log"
_TIMESTAMP_FORMAT = "%Y/%m/%d %H:%M:%S"


class ServiceLogger:
    """Appends timestamped, levelled lines to ``<log_dir>/helpdesk.log``.

    The log directory is created if missing. Messages are formatted with
    ``%`` placeholders when arguments are given. Once closed, further
    messages are dropped.
    """

    def __init__(self, service_name: str, is_service: bool, log_dir: str | os.PathLike[str]) -> None:
        self.service_name = service_name
        self.is_service = is_service
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        self.path = directory / LOG_FILE_NAME
        self._file = open(self.path, "a", encoding="utf-8")
        self._lock = threading.Lock()

    def info(self, msg: str, *args: object) -> None:
        """Log an informational message."""
        self._write("INFO", msg, args)

    def error(self, msg: str, *args: object) -> None:
        """Log an error message."""
        self._write("ERROR", msg, args)

    def warning(self, msg: str, *args: object) -> None:
        """Log a warning message."""
        self._write("WARNING", msg, args)

    def close(self) -> None:
        """Close the log file; safe to call more than once."""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    def __enter__(self) -> ServiceLogger:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _write(self, level: str, msg: str, args: tuple[object, ...]) -> None:
        text = msg % args if args else msg
        line = f"{time.strftime(_TIMESTAMP_FORMAT)} [{level}] {text}\n"
        with self._lock:
            if self._file is None:
                return
            self._file.write(line)
            self._file.flush()