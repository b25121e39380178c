"""Execution log: a timestamped file mirroring progress lines and command output."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO, Union

from xrun.errors import LogFileError

logger = logging.getLogger(__name__)

LOG_PREFIX = "xrun"
LOG_SUFFIX = ".logs"
TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def log_file_name(data_file: Union[str, Path], now: Optional[datetime] = None) -> str:
    """Derive ``xrun-<base>-<YYYYMMDD-HHMMSS>.logs`` from the data file path.

    Only the final extension is removed: ``users.csv`` -> ``users``,
    ``archive.tar.gz`` -> ``archive.tar``, ``data`` -> ``data``.
    """
    stem = Path(data_file).stem
    timestamp = (now or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return f"{LOG_PREFIX}-{stem}-{timestamp}{LOG_SUFFIX}"


class ExecutionLog:
    """An open log file owned by a single run.

    Use as a context manager; the file is closed exactly once however the
    run ends.
    """

    def __init__(self, path: Path, stream: TextIO):
        self.path = path
        self._stream: Optional[TextIO] = stream

    @classmethod
    def create(
        cls,
        data_file: Union[str, Path],
        directory: Optional[Path] = None,
        now: Optional[datetime] = None,
    ) -> "ExecutionLog":
        """Create the log file in ``directory`` (default: current working directory).

        Raises:
            LogFileError: if the file cannot be created.
        """
        path = (directory or Path.cwd()) / log_file_name(data_file, now)
        try:
            stream = open(path, "w", encoding="utf-8")
        except OSError as e:
            raise LogFileError(f"failed to create log file: {e}") from e
        logger.info("Logging execution output to %s", path)
        return cls(path, stream)

    @property
    def stream(self) -> TextIO:
        if self._stream is None:
            raise ValueError(f"execution log {self.path} is closed")
        return self._stream

    @property
    def closed(self) -> bool:
        return self._stream is None

    def close(self) -> None:
        if self._stream is None:
            return
        stream, self._stream = self._stream, None
        stream.close()

    def __enter__(self) -> "ExecutionLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
