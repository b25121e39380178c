"""Executors: what happens to a rendered command.

Two implementations share one ``dispatch(command, progress)`` method:
- ``PrintExecutor`` writes the command to stdout (dry run)
- ``ShellExecutor`` runs it through the shell, mirroring its output to the
  console and, when enabled, to the execution log

Executors never raise for a failing command. Failures come back as a
``DispatchOutcome`` and the caller decides how to report them.
"""

import codecs
import os
import selectors
import subprocess
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, TextIO

from pydantic import BaseModel

from xrun._internal.broadcast import BroadcastWriter
from xrun.codes import IssueCode

PROGRESS_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
READ_CHUNK_SIZE = 65536


@dataclass(frozen=True)
class Progress:
    """Position of a record in the run. ``current`` is 1-based."""
    current: int
    total: int

    def __str__(self) -> str:
        return f"[{self.current}/{self.total}]"


class DispatchOutcome(BaseModel):
    """Result of handing one command to an executor."""
    ok: bool
    exit_code: Optional[int] = None  # None when no process ran
    code: Optional[IssueCode] = None  # Set when ok is False
    error: Optional[str] = None


class CommandExecutor(ABC):
    """Capability interface selected once per run."""

    dry_run: bool = False

    @abstractmethod
    def dispatch(self, command: str, progress: Progress) -> DispatchOutcome:
        """Handle one rendered command."""


class PrintExecutor(CommandExecutor):
    """Print each command verbatim, one per line. Nothing is executed."""

    dry_run = True

    def __init__(self, stdout: Optional[TextIO] = None):
        self._stdout = stdout

    def dispatch(self, command: str, progress: Progress) -> DispatchOutcome:
        out = self._stdout or sys.stdout
        out.write(command + "\n")
        out.flush()
        return DispatchOutcome(ok=True)


class ShellExecutor(CommandExecutor):
    """Run commands through the shell and wait for each one to exit.

    Standard output and standard error of the command are copied to the
    console streams and to ``log`` (if given) as they arrive. Each command
    is preceded by a ``[current/total] <timestamp> Executing: <command>``
    line on stdout and in the log.
    """

    def __init__(
        self,
        log: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.log = log
        self._stdout = stdout
        self._stderr = stderr
        self._clock = clock

    def progress_line(self, command: str, progress: Progress) -> str:
        timestamp = self._clock().strftime(PROGRESS_TIMESTAMP_FORMAT)
        return f"{progress} {timestamp} Executing: {command}"

    def dispatch(self, command: str, progress: Progress) -> DispatchOutcome:
        if not command.strip():
            return DispatchOutcome(ok=False, code=IssueCode.EMPTY_COMMAND, error="empty command")

        out = BroadcastWriter(self._stdout or sys.stdout, self.log)
        err = BroadcastWriter(self._stderr or sys.stderr, self.log)
        out.writeline(self.progress_line(command, progress))

        try:
            exit_code = self._run(command, out, err)
        except OSError as e:
            return DispatchOutcome(
                ok=False,
                code=IssueCode.SPAWN_FAILED,
                error=f"failed to start command: {e}",
            )
        finally:
            out.flush()
            err.flush()

        if exit_code == 0:
            return DispatchOutcome(ok=True, exit_code=0)
        if exit_code < 0:
            message = f"command terminated by signal {-exit_code}"
        else:
            message = f"command exited with status {exit_code}"
        return DispatchOutcome(
            ok=False,
            exit_code=exit_code,
            code=IssueCode.NONZERO_EXIT,
            error=message,
        )

    @staticmethod
    def _run(command: str, out: BroadcastWriter, err: BroadcastWriter) -> int:
        """Spawn the command and pump both pipes until it exits. Returns the exit code."""
        with subprocess.Popen(
            command,
            shell=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        ) as proc:
            with selectors.DefaultSelector() as selector:
                for pipe, writer in ((proc.stdout, out), (proc.stderr, err)):
                    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
                    selector.register(pipe, selectors.EVENT_READ, (writer, decoder))

                while selector.get_map():
                    for key, _ in selector.select():
                        writer, decoder = key.data
                        chunk = os.read(key.fd, READ_CHUNK_SIZE)
                        if chunk:
                            writer.write(decoder.decode(chunk))
                            writer.flush()
                            continue
                        writer.write(decoder.decode(b"", final=True))
                        selector.unregister(key.fileobj)
            return proc.wait()


def create_executor(dry_run: bool, log: Optional[TextIO] = None) -> CommandExecutor:
    """Select the executor for a run: print for dry runs, shell otherwise."""
    if dry_run:
        return PrintExecutor()
    return ShellExecutor(log=log)
