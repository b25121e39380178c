"""Performance sentinels (gated)."""

from __future__ import annotations

import json
import os

import pytest

from xrun.api import run_batch
from xrun.kernel.records import load_records

RECORD_COUNT = 20000


def _budget_from_env(var_name: str, default_ms: float) -> float:
    raw = os.getenv(var_name)
    if not raw:
        return default_ms
    try:
        return float(raw)
    except ValueError:
        return default_ms


MAX_CSV_LOAD_MS = _budget_from_env("XRUN_MAX_CSV_LOAD_MS", 500.0)
MAX_JSONL_LOAD_MS = _budget_from_env("XRUN_MAX_JSONL_LOAD_MS", 1000.0)
MAX_DRY_RUN_MS = _budget_from_env("XRUN_MAX_DRY_RUN_MS", 1500.0)


def _assert_budget(benchmark, max_ms: float) -> None:
    mean_ms = benchmark.stats.stats.mean * 1000.0
    assert mean_ms < max_ms, f"Mean {mean_ms:.2f} ms exceeded budget {max_ms:.2f} ms"


@pytest.fixture
def wide_csv(tmp_path):
    path = tmp_path / "wide.csv"
    lines = ["id,name,email,team"]
    lines += [f"{i},user{i},user{i}@example.com,team{i % 7}" for i in range(RECORD_COUNT)]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def mixed_jsonl(tmp_path):
    path = tmp_path / "mixed.jsonl"
    rows = [json.dumps({"id": i, "score": i / 3, "ok": i % 2 == 0, "tags": ["a", i]}) for i in range(RECORD_COUNT)]
    path.write_text("\n".join(rows) + "\n", encoding="utf-8")
    return path


@pytest.mark.perf
def test_csv_load_sentinel(benchmark, wide_csv):
    loaded = benchmark.pedantic(lambda: load_records(wide_csv), rounds=3, iterations=1)
    assert loaded.total == RECORD_COUNT
    _assert_budget(benchmark, MAX_CSV_LOAD_MS)


@pytest.mark.perf
def test_jsonl_load_sentinel(benchmark, mixed_jsonl):
    loaded = benchmark.pedantic(lambda: load_records(mixed_jsonl), rounds=3, iterations=1)
    assert loaded.total == RECORD_COUNT
    assert loaded.issues == []
    _assert_budget(benchmark, MAX_JSONL_LOAD_MS)


@pytest.mark.perf
def test_dry_run_sentinel(benchmark, wide_csv, capsys):
    summary = benchmark.pedantic(
        lambda: run_batch(wide_csv, "notify --to {{.email}} --team {{.team}}", dry_run=True),
        rounds=3,
        iterations=1,
    )
    assert summary.succeeded == RECORD_COUNT
    capsys.readouterr()
    _assert_budget(benchmark, MAX_DRY_RUN_MS)
