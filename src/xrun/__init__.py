"""xrun: run a command template once per record of a CSV, JSON or JSON Lines file."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("xrun")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
from xrun.api import run_batch, read_template_file, RunOptions, RunSummary
from xrun.contracts import RecordIssue
from xrun.codes import IssueCode
from xrun.errors import (
    XrunError,
    DataFileError,
    TemplateSyntaxError,
    LogFileError,
    RenderError,
)

__all__ = [
    "__version__",
    "run_batch",
    "read_template_file",
    "RunOptions",
    "RunSummary",
    "RecordIssue",
    "IssueCode",
    "XrunError",
    "DataFileError",
    "TemplateSyntaxError",
    "LogFileError",
    "RenderError",
]
