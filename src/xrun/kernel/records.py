"""Record normalizer: CSV, JSON array and JSON Lines files into flat string records.

All three formats are read fully into memory so the total record count is
known before the first command is rendered. A record is a plain
``Dict[str, str]``; field order carries no meaning.

Format selection is by file extension (case-insensitive):
- ``.json``  -> JSON array of objects
- ``.jsonl`` -> one JSON object per line
- anything else, including no extension -> CSV with a header row
"""

import csv
import io
import json
import logging
import math
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Type, Union

from xrun.codes import IssueCode
from xrun.contracts import RecordIssue
from xrun.errors import DataFileError
from xrun.kernel.values import coerce_object

logger = logging.getLogger(__name__)

Record = Dict[str, str]


@dataclass(frozen=True)
class SourceRecord:
    """One normalized record plus where it came from."""
    index: int  # 1-based position among the loaded records
    location: str  # Human-readable origin, e.g. "row 2" or "line 5"
    fields: Record
    raw: Any  # The row list or decoded object before coercion


@dataclass
class LoadedRecords:
    """Materialized output of a record source."""
    format: str
    records: List[SourceRecord] = field(default_factory=list)
    issues: List[RecordIssue] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.records)


def _parse_float(text: str) -> float:
    value = float(text)
    if math.isinf(value):
        raise ValueError(f"number {text} is out of range")
    return value


def _parse_int(text: str) -> Union[int, float]:
    """Keep integers exact, rejecting values a double cannot hold."""
    if text == "-0":
        return -0.0
    value = int(text)
    if abs(value) > sys.float_info.max:
        raise ValueError(f"number {text} is out of range")
    return value


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant {name}")


def _decode_json(text: str) -> Any:
    return json.loads(
        text,
        parse_float=_parse_float,
        parse_int=_parse_int,
        parse_constant=_reject_constant,
    )


class RecordSource(ABC):
    """A data file that can be read into a sequence of records.

    Reading is one-shot: ``load()`` opens the file, reads it to the end and
    closes it again. Calling ``load()`` a second time re-opens the file.
    """

    format_name: str = ""
    encoding: str = "utf-8"
    errors: str = "strict"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read_bytes(self) -> bytes:
        try:
            with open(self.path, "rb") as f:
                return f.read()
        except OSError as e:
            raise DataFileError(f"failed to open data file: {e}") from e

    def _read_text(self) -> str:
        data = self._read_bytes()
        try:
            return data.decode(self.encoding, self.errors)
        except UnicodeDecodeError as e:
            raise DataFileError(f"failed to read data file {self.path}: {e}") from e

    @abstractmethod
    def load(self) -> LoadedRecords:
        """Read the whole file.

        Raises:
            DataFileError: if the file cannot be opened or is structurally unreadable.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"


def _reject_bare_quotes(raw: str) -> None:
    """Raise ``csv.Error`` for a quote inside a field that does not start with one.

    ``raw`` is the source text of one record. Quoted fields have already been
    validated by the strict reader, so only the unquoted case is checked here.
    """
    state = "start"  # start | unquoted | quoted | closed
    for char in raw:
        if state == "quoted":
            if char == '"':
                state = "closed"
        elif char == '"':
            if state == "unquoted":
                raise csv.Error('bare " in non-quoted field')
            # Opening quote, or the second half of an escaped ""
            state = "quoted"
        elif char in ",\r\n":
            state = "start"
        else:
            state = "unquoted"


class _LineTap:
    """Line iterator that remembers the lines handed to the CSV reader."""

    def __init__(self, text: str):
        self._lines = io.StringIO(text, newline="")
        self.consumed: List[str] = []

    def __iter__(self):
        return self

    def __next__(self) -> str:
        line = next(self._lines)
        self.consumed.append(line)
        return line

    def take(self) -> str:
        raw = "".join(self.consumed)
        self.consumed.clear()
        return raw


class CsvSource(RecordSource):
    """CSV with a header row. Short rows leave their trailing fields absent.

    Bytes that are not valid UTF-8 become U+FFFD; only structural problems
    (bad quoting, no header row) are fatal.
    """

    format_name = "csv"
    # Tolerate a UTF-8 byte order mark in front of the header row
    encoding = "utf-8-sig"
    errors = "replace"

    def load(self) -> LoadedRecords:
        tap = _LineTap(self._read_text())
        reader = csv.reader(tap, strict=True)
        loaded = LoadedRecords(format=self.format_name)

        def rows():
            for row in reader:
                _reject_bare_quotes(tap.take())
                yield row

        try:
            row_iter = rows()
            headers = next(row_iter, None)
            while headers == []:
                headers = next(row_iter, None)
            if headers is None:
                raise DataFileError(f"failed to read CSV headers: {self.path} is empty")

            for row in row_iter:
                if not row:
                    continue
                index = loaded.total + 1
                fields = {header: row[i] for i, header in enumerate(headers) if i < len(row)}
                loaded.records.append(
                    SourceRecord(index=index, location=f"row {index}", fields=fields, raw=row)
                )
        except csv.Error as e:
            raise DataFileError(
                f"failed to read CSV row (line {reader.line_num}): {e}"
            ) from e

        logger.debug("Loaded %d CSV records from %s", loaded.total, self.path)
        return loaded


class JsonSource(RecordSource):
    """A single JSON array whose elements are all objects."""

    format_name = "json"

    def load(self) -> LoadedRecords:
        text = self._read_text()
        try:
            data = _decode_json(text)
        except ValueError as e:
            raise DataFileError(f"failed to parse JSON: {e}") from e

        if not isinstance(data, list):
            raise DataFileError(
                f"failed to parse JSON: expected an array of objects, got {type(data).__name__}"
            )

        loaded = LoadedRecords(format=self.format_name)
        for position, obj in enumerate(data, start=1):
            if not isinstance(obj, dict):
                raise DataFileError(
                    f"failed to parse JSON: element {position} is {type(obj).__name__}, not an object"
                )
            loaded.records.append(
                SourceRecord(
                    index=position,
                    location=f"record {position}",
                    fields=coerce_object(obj),
                    raw=obj,
                )
            )

        logger.debug("Loaded %d JSON records from %s", loaded.total, self.path)
        return loaded


class JsonlSource(RecordSource):
    """One JSON object per line. Bad lines are skipped and reported, never fatal."""

    format_name = "jsonl"

    def load(self) -> LoadedRecords:
        data = self._read_bytes()
        loaded = LoadedRecords(format=self.format_name)

        for line_number, raw_line in enumerate(data.split(b"\n"), start=1):
            try:
                line = raw_line.decode(self.encoding).strip()
            except UnicodeDecodeError as e:
                self._skip(
                    loaded,
                    line_number,
                    raw_line.decode(self.encoding, "replace").strip(),
                    f"failed to parse JSON on line {line_number}: invalid UTF-8: {e}",
                )
                continue
            if not line:
                continue

            try:
                obj = _decode_json(line)
            except ValueError as e:
                self._skip(loaded, line_number, line, f"failed to parse JSON on line {line_number}: {e}")
                continue
            if not isinstance(obj, dict):
                self._skip(
                    loaded,
                    line_number,
                    line,
                    f"failed to parse JSON on line {line_number}: expected an object, got {type(obj).__name__}",
                )
                continue

            loaded.records.append(
                SourceRecord(
                    index=loaded.total + 1,
                    location=f"line {line_number}",
                    fields=coerce_object(obj),
                    raw=obj,
                )
            )

        logger.debug(
            "Loaded %d JSONL records from %s (%d lines skipped)",
            loaded.total, self.path, len(loaded.issues),
        )
        return loaded

    @staticmethod
    def _skip(loaded: LoadedRecords, line_number: int, line: str, message: str) -> None:
        logger.warning(message)
        loaded.issues.append(
            RecordIssue(
                code=IssueCode.INVALID_JSONL_LINE,
                message=message,
                location=f"line {line_number}",
                record=line,
            )
        )


SOURCES_BY_EXTENSION: Dict[str, Type[RecordSource]] = {
    ".json": JsonSource,
    ".jsonl": JsonlSource,
}


def source_for_path(path: Union[str, Path]) -> RecordSource:
    """Pick the record source for a data file by its extension.

    Unknown extensions (and ``.csv``) fall back to CSV.
    """
    path = Path(path)
    source_cls = SOURCES_BY_EXTENSION.get(path.suffix.lower(), CsvSource)
    return source_cls(path)


def load_records(path: Union[str, Path]) -> LoadedRecords:
    """Normalize a data file into records, choosing the format by extension."""
    return source_for_path(path).load()
