"""Test public API surface - ensure imports work correctly and no side effects."""

import types


def test_root_exports():
    import xrun

    for name in xrun.__all__:
        assert hasattr(xrun, name), name
    assert callable(xrun.run_batch)
    assert isinstance(xrun.run_batch, types.FunctionType)


def test_fatal_errors_share_a_base():
    from xrun import DataFileError, LogFileError, RenderError, TemplateSyntaxError, XrunError

    for cls in (DataFileError, LogFileError, RenderError, TemplateSyntaxError):
        assert issubclass(cls, XrunError)


def test_issue_codes_are_strings():
    from xrun import IssueCode

    assert IssueCode.INVALID_JSONL_LINE == "INVALID_JSONL_LINE"
    assert {c.value for c in IssueCode} == {
        "INVALID_JSONL_LINE",
        "TEMPLATE_RENDER_ERROR",
        "EMPTY_COMMAND",
        "SPAWN_FAILED",
        "NONZERO_EXIT",
    }


def test_summary_serializes(tmp_path):
    from xrun import IssueCode, RecordIssue, RunSummary

    summary = RunSummary(
        data_file=str(tmp_path / "x.jsonl"),
        format="jsonl",
        total=1,
        skipped=1,
        issues=[RecordIssue(code=IssueCode.INVALID_JSONL_LINE, message="bad", location="line 2", record="{")],
    )
    dumped = summary.model_dump(mode="json")
    assert dumped["issues"][0]["code"] == "INVALID_JSONL_LINE"
    assert summary.ok is False


def test_version_string():
    import xrun

    assert xrun.__version__ in ("0.1.0", "dev")
