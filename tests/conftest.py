"""Pytest configuration for tests.

No sys.path hacks - tests should import from the installed xrun package.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional, TextIO

import pytest

from xrun.cli import LOG_HANDLER_NAME
from xrun.codes import IssueCode
from xrun.kernel.executor import CommandExecutor, DispatchOutcome, Progress


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


class RecordingExecutor(CommandExecutor):
    """Executor that remembers what it was asked to run instead of running it."""

    def __init__(self, dry_run: bool = False, log: Optional[TextIO] = None, fail_on: str = ""):
        self.dry_run = dry_run
        self.log = log
        self.fail_on = fail_on
        self.commands: List[str] = []
        self.progress: List[Progress] = []

    def dispatch(self, command: str, progress: Progress) -> DispatchOutcome:
        self.commands.append(command)
        self.progress.append(progress)
        if self.fail_on and self.fail_on in command:
            return DispatchOutcome(ok=False, exit_code=1, code=IssueCode.NONZERO_EXIT, error="command exited with status 1")
        return DispatchOutcome(ok=True, exit_code=0)


@pytest.fixture
def recorder():
    """A RecordingExecutor plus a factory that hands it to run_batch."""
    executor = RecordingExecutor()

    def factory(dry_run, log):
        executor.dry_run = dry_run
        executor.log = log
        return executor

    executor.factory = factory
    return executor


@pytest.fixture
def write_data(tmp_path):
    """Write a data file under tmp_path and return its path."""

    def _write(name: str, content) -> Path:
        path = tmp_path / name
        if not isinstance(content, str):
            content = json.dumps(content)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def in_tmp_cwd(tmp_path, monkeypatch):
    """Run the test with tmp_path as the working directory (log files land here)."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def _drop_cli_log_handler():
    """Remove the stderr handler the CLI installs so it never outlives a captured stream."""
    yield
    package_logger = logging.getLogger("xrun")
    for handler in list(package_logger.handlers):
        if handler.get_name() == LOG_HANDLER_NAME:
            package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
