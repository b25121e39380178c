"""Errors raised by the xrun pipeline.

Fatal errors abort the whole run before (or instead of) processing records.
``RenderError`` is the only per-record error; the orchestrator catches it,
reports it, and moves on to the next record.
"""


class XrunError(Exception):
    """Base error for this package."""


class DataFileError(XrunError):
    """Raised when the data file cannot be opened or its stream cannot be decoded."""


class TemplateSyntaxError(XrunError):
    """Raised when a command template fails to compile."""

    def __init__(self, message: str, column: int):
        super().__init__(f"{message} (column {column})")
        self.column = column


class LogFileError(XrunError):
    """Raised when the execution log file cannot be created."""


class RenderError(XrunError):
    """Raised when a compiled template cannot be rendered against one record."""
