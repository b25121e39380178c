"""Command templates: ``{{.field}}`` placeholders substituted from a record.

A template is compiled once per run and rendered once per record. Compiling
fails on malformed actions; rendering fails only for field paths that
cannot be evaluated against string values.

Grammar:
- literal text is copied verbatim (a stray ``}}`` is literal too)
- an action is ``{{ .name }}`` with optional spaces inside the braces
- ``.a.b`` is accepted at compile time but never resolves, because every
  record value is a string
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Mapping, Tuple, Union

from xrun.errors import RenderError, TemplateSyntaxError

ACTION_OPEN = "{{"
ACTION_CLOSE = "}}"

_IDENTIFIER = r"[^\W\d]\w*"
_FIELD_PATH = re.compile(rf"\.({_IDENTIFIER}(?:\.{_IDENTIFIER})*)")


@dataclass(frozen=True)
class FieldRef:
    """A compiled ``{{.path}}`` action."""
    path: Tuple[str, ...]
    column: int  # 1-based column of the opening braces

    @property
    def text(self) -> str:
        return "." + ".".join(self.path)


Segment = Union[str, FieldRef]


@dataclass(frozen=True)
class CommandTemplate:
    """Immutable compiled template."""
    source: str
    segments: Tuple[Segment, ...]

    @property
    def fields(self) -> FrozenSet[str]:
        """Top-level field names referenced by the template."""
        return frozenset(s.path[0] for s in self.segments if isinstance(s, FieldRef))

    def render(self, record: Mapping[str, str]) -> str:
        """Substitute record values into the template.

        Fields absent from the record render as the empty string.

        Raises:
            RenderError: if a dotted path reaches into a string value.
        """
        parts = []
        for segment in self.segments:
            if isinstance(segment, str):
                parts.append(segment)
                continue
            if len(segment.path) > 1:
                raise RenderError(
                    f"column {segment.column}: at <{segment.text}>: "
                    f"can't evaluate field {segment.path[1]} in type string"
                )
            parts.append(record.get(segment.path[0], ""))
        return "".join(parts)


def compile_template(source: str) -> CommandTemplate:
    """Compile template text.

    Raises:
        TemplateSyntaxError: on an unclosed, empty or unsupported action.
    """
    segments = []
    pos = 0
    while True:
        start = source.find(ACTION_OPEN, pos)
        if start == -1:
            if pos < len(source):
                segments.append(source[pos:])
            break

        if start > pos:
            segments.append(source[pos:start])

        column = start + 1
        end = source.find(ACTION_CLOSE, start + len(ACTION_OPEN))
        if end == -1:
            raise TemplateSyntaxError("unclosed action", column)

        body = source[start + len(ACTION_OPEN):end].strip(" \t")
        if not body:
            raise TemplateSyntaxError("missing value for action", column)
        match = _FIELD_PATH.fullmatch(body)
        if match is None:
            raise TemplateSyntaxError(
                f"unsupported action {ACTION_OPEN}{body}{ACTION_CLOSE}: "
                f"only {ACTION_OPEN}.field{ACTION_CLOSE} substitution is allowed",
                column,
            )

        segments.append(FieldRef(path=tuple(match.group(1).split(".")), column=column))
        pos = end + len(ACTION_CLOSE)

    return CommandTemplate(source=source, segments=tuple(segments))
