"""Public API for xrun.

``run_batch`` is the run orchestrator: it compiles the template, loads every
record of the data file, then renders and dispatches one command per record
in order. File-level and template-level problems abort the run by raising;
record-level problems are reported, collected in the returned summary, and
skipped.
"""

import logging
import os
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Union

from pydantic import BaseModel, Field

from xrun._internal.canonical_json import compact_dumps
from xrun._internal.logfile import ExecutionLog
from xrun.codes import IssueCode
from xrun.contracts import RecordIssue
from xrun.errors import RenderError, XrunError
from xrun.kernel.executor import CommandExecutor, Progress, create_executor
from xrun.kernel.records import SourceRecord, load_records
from xrun.kernel.template import compile_template

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[bool, Optional[TextIO]], CommandExecutor]


def _normalize_path(path: Union[str, os.PathLike, Path]) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


class RunOptions(BaseModel):
    """Validated options for one run, as collected by the CLI."""
    data_file: Path
    template: str
    dry_run: bool = False
    log_files: bool = True  # Ignored for dry runs
    log_dir: Optional[Path] = None  # Defaults to the current working directory


class RunSummary(BaseModel):
    """Stable result model for a completed run."""
    data_file: str
    format: str  # "csv" | "json" | "jsonl"
    total: int  # Records successfully normalized
    dispatched: int = 0  # Commands handed to the executor (succeeded + failed)
    succeeded: int = 0
    failed: int = 0  # Spawn failures and non-zero exits
    skipped: int = 0  # Bad JSONL lines, render errors, empty commands
    dry_run: bool = False
    log_file: Optional[str] = None
    issues: List[RecordIssue] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True if every record produced a command that ran cleanly."""
        return not self.issues


def read_template_file(path: Union[str, os.PathLike, Path]) -> str:
    """Read a command template from a file.

    One trailing line break is dropped so that a template saved by an editor
    renders exactly like the same text passed on the command line.

    Raises:
        XrunError: if the file cannot be read.
    """
    template_path = _normalize_path(path)
    try:
        with open(template_path, "r", encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise XrunError(f"failed to read template file: {e}") from e
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def _record_issue(record: SourceRecord, code: IssueCode, message: str) -> RecordIssue:
    return RecordIssue(
        code=code,
        message=message,
        location=record.location,
        index=record.index,
        record=record.raw,
    )


def run_batch(
    data_file: Union[str, os.PathLike, Path],
    template: str,
    dry_run: bool = False,
    log_files: bool = True,
    log_dir: Optional[Path] = None,
    executor_factory: ExecutorFactory = create_executor,
) -> RunSummary:
    """Render ``template`` once per record of ``data_file`` and dispatch each command.

    The execution log is created only for real runs with ``log_files`` set,
    after the template and the data file have both been read successfully.

    Args:
        data_file: CSV, JSON (``.json``) or JSON Lines (``.jsonl``) file
        template: Command template with ``{{.field}}`` placeholders
        dry_run: Print commands instead of executing them
        log_files: Mirror progress and command output to an execution log
        log_dir: Directory for the execution log (defaults to cwd)
        executor_factory: Builds the executor from ``(dry_run, log_stream)``

    Returns:
        RunSummary with counts and every recoverable issue

    Raises:
        TemplateSyntaxError: template does not compile
        DataFileError: data file cannot be opened or decoded
        LogFileError: execution log cannot be created
    """
    data_path = _normalize_path(data_file)
    compiled = compile_template(template)
    loaded = load_records(data_path)

    summary = RunSummary(
        data_file=str(data_path),
        format=loaded.format,
        total=loaded.total,
        dry_run=dry_run,
        issues=list(loaded.issues),
        skipped=len(loaded.issues),
    )
    logger.info("Loaded %d %s records from %s", loaded.total, loaded.format, data_path)

    with ExitStack() as stack:
        log_stream: Optional[TextIO] = None
        if not dry_run and log_files:
            log = stack.enter_context(ExecutionLog.create(data_path, directory=log_dir))
            summary.log_file = str(log.path)
            log_stream = log.stream

        executor = executor_factory(dry_run, log_stream)

        for record in loaded.records:
            try:
                command = compiled.render(record.fields)
            except RenderError as e:
                message = (
                    f"template execution error for {record.location} "
                    f"{compact_dumps(record.raw)}: {e}"
                )
                logger.warning(message)
                summary.issues.append(_record_issue(record, IssueCode.TEMPLATE_RENDER_ERROR, message))
                summary.skipped += 1
                continue

            outcome = executor.dispatch(command, Progress(record.index, loaded.total))
            if outcome.ok:
                summary.dispatched += 1
                summary.succeeded += 1
                continue

            message = f"command execution error for {record.location}: {outcome.error}"
            logger.warning(message)
            summary.issues.append(
                _record_issue(record, outcome.code or IssueCode.NONZERO_EXIT, message)
            )
            if outcome.code == IssueCode.EMPTY_COMMAND:
                summary.skipped += 1
            else:
                summary.dispatched += 1
                summary.failed += 1

    logger.info(
        "Run finished: %d succeeded, %d failed, %d skipped",
        summary.succeeded, summary.failed, summary.skipped,
    )
    return summary


def run(options: RunOptions, executor_factory: ExecutorFactory = create_executor) -> RunSummary:
    """Run a batch from validated options."""
    return run_batch(
        options.data_file,
        options.template,
        dry_run=options.dry_run,
        log_files=options.log_files,
        log_dir=options.log_dir,
        executor_factory=executor_factory,
    )
