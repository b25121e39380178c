"""Public issue model shared by the normalizer, the orchestrator and the CLI."""

from typing import Any, Optional
from pydantic import BaseModel

from xrun.codes import IssueCode


class RecordIssue(BaseModel):
    """A recoverable problem with one record. The record is skipped, the run goes on."""
    code: IssueCode
    message: str
    location: str  # "row 3" (CSV), "record 2" (JSON), "line 7" (JSONL)
    index: Optional[int] = None  # 1-based position in the record sequence, None if never normalized
    record: Optional[Any] = None  # Raw record as read from the file, for diagnostics
