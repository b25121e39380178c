"""Issue code constants for per-record problems reported by xrun.api.run_batch().

These constants prevent stringly-typed issue codes and ensure
client code matches on the correct values.
"""

from enum import Enum


class IssueCode(str, Enum):
    """Recoverable per-record issue codes. None of them change the exit code."""

    # Normalization
    INVALID_JSONL_LINE = "INVALID_JSONL_LINE"

    # Rendering
    TEMPLATE_RENDER_ERROR = "TEMPLATE_RENDER_ERROR"
    EMPTY_COMMAND = "EMPTY_COMMAND"

    # Execution
    SPAWN_FAILED = "SPAWN_FAILED"
    NONZERO_EXIT = "NONZERO_EXIT"
