from __future__ import annotations

import os
from pathlib import Path

import pytest

from covmerge.aggregate import (
    AggregateCoverage,
    aggregate,
    fold_entries,
    load_coverage,
)
from covmerge.counts import Counts
from covmerge.exceptions import (
    MalformedInput,
    MissingExpectedSources,
    NeverThrown,
    NoInputFiles,
)
from covmerge.loader import RunFileEntry, load_run_file
from covmerge.saturating import MAX_INT


def _two_runs(tmp_path: Path, write_coverage) -> tuple[Path, Path]:
    first = write_coverage(
        tmp_path / "first.coverage",
        [("a.ml", [1, 0, 1], b"points-1"), ("b.ml", [4], b"b-points")],
    )
    second = write_coverage(
        tmp_path / "second.coverage",
        [("a.ml", [0, 1, 1], b"points-2")],
    )
    return first, second


def test_aggregate_sums_counters(tmp_path: Path, write_coverage) -> None:
    first, second = _two_runs(tmp_path, write_coverage)
    coverage = aggregate([first, second])
    assert coverage.counters == {"a.ml": [1, 1, 2], "b.ml": [4]}
    assert coverage.run_files == [str(first), str(second)]


def test_aggregate_is_order_independent_for_counters(
    tmp_path: Path, write_coverage
) -> None:
    first, second = _two_runs(tmp_path, write_coverage)
    forward = aggregate([first, second])
    backward = aggregate([second, first])
    assert forward.counters == backward.counters


def test_aggregate_points_last_write_wins(tmp_path: Path, write_coverage) -> None:
    first, second = _two_runs(tmp_path, write_coverage)
    assert aggregate([first, second]).points["a.ml"] == b"points-2"
    assert aggregate([second, first]).points["a.ml"] == b"points-1"
    assert aggregate([second, first]).points["b.ml"] == b"b-points"


def test_fold_entries_tolerates_length_mismatch() -> None:
    acc = AggregateCoverage()
    fold_entries(acc, [RunFileEntry("a.ml", (1, 2, 3), b"old")])
    fold_entries(acc, [RunFileEntry("a.ml", (1,), b"new")])
    assert acc.counters == {"a.ml": [2, 2, 3]}
    assert acc.points == {"a.ml": b"new"}


def test_fold_entries_saturates() -> None:
    acc = AggregateCoverage()
    fold_entries(acc, [RunFileEntry("a.ml", (MAX_INT,), b"")])
    fold_entries(acc, [RunFileEntry("a.ml", (MAX_INT,), b"")])
    assert acc.counters["a.ml"] == [MAX_INT]


def test_aggregate_aborts_on_malformed_file(tmp_path: Path, write_coverage) -> None:
    first, _second = _two_runs(tmp_path, write_coverage)
    broken = tmp_path / "broken.coverage"
    broken.write_bytes(b"nope")
    with pytest.raises(MalformedInput) as excinfo:
        aggregate([first, broken])
    assert excinfo.value.filename == str(broken)


def test_aggregate_with_workers_matches_sequential(
    tmp_path: Path, write_coverage
) -> None:
    run_files = [
        write_coverage(
            tmp_path / f"run-{index}.coverage",
            [("a.ml", [index, 1], f"p{index}".encode())],
        )
        for index in range(6)
    ]
    sequential = aggregate(run_files)
    parallel = aggregate(run_files, workers=3)
    assert parallel.counters == sequential.counters == {"a.ml": [15, 6]}
    assert parallel.points == sequential.points == {"a.ml": b"p5"}


def test_aggregate_with_workers_propagates_failure(
    tmp_path: Path, write_coverage
) -> None:
    good = write_coverage(tmp_path / "good.coverage", [("a.ml", [1], b"")])
    bad = _write_bad(tmp_path)
    with pytest.raises(MalformedInput) as excinfo:
        aggregate([good, bad, good], workers=2)
    assert excinfo.value.filename == str(bad)


def _write_bad(tmp_path: Path) -> Path:
    path = tmp_path / "bad.coverage"
    path.write_bytes(b"BISECT-COVERAGE-4 1 oops")
    return path


def test_aggregate_rejects_invalid_worker_count(tmp_path: Path) -> None:
    with pytest.raises(NeverThrown):
        aggregate([], workers=0)


def test_aggregate_accepts_custom_loader() -> None:
    loaded: list[str] = []

    def _load(path: str) -> list[RunFileEntry]:
        loaded.append(path)
        return [RunFileEntry("x.ml", (1,), path.encode())]

    coverage = aggregate(["one", "two"], load=_load)
    assert loaded == ["one", "two"]
    assert coverage.counters == {"x.ml": [2]}
    assert coverage.points == {"x.ml": b"two"}


def test_counts_and_entries(tmp_path: Path, write_coverage) -> None:
    first, second = _two_runs(tmp_path, write_coverage)
    coverage = aggregate([first, second])
    assert coverage.file_counts() == {
        "a.ml": Counts(visited=3, total=3),
        "b.ml": Counts(visited=1, total=1),
    }
    assert coverage.total_counts() == Counts(visited=4, total=4)
    assert coverage.entries() == [
        RunFileEntry("a.ml", (1, 1, 2), b"points-2"),
        RunFileEntry("b.ml", (4,), b"b-points"),
    ]


def test_merged_entries_reload(tmp_path: Path, write_coverage) -> None:
    first, second = _two_runs(tmp_path, write_coverage)
    coverage = aggregate([first, second])
    merged = write_coverage(
        tmp_path / "merged.coverage",
        [(e.source_file, list(e.counters), e.points) for e in coverage.entries()],
    )
    assert load_run_file(merged) == coverage.entries()


def test_load_coverage_validates_expected_sources(
    tmp_path: Path, write_coverage
) -> None:
    first, second = _two_runs(tmp_path, write_coverage)
    coverage = load_coverage(
        [str(first), str(second)], [], ["a.ml", "b.ml"], []
    )
    assert coverage.counters["a.ml"] == [1, 1, 2]
    with pytest.raises(MissingExpectedSources) as excinfo:
        load_coverage([str(second)], [], ["a.ml", "b.ml", "c.ml"], ["c.ml"])
    assert excinfo.value.missing == ("b.ml",)


def test_load_coverage_searches_paths(tmp_path: Path, write_coverage) -> None:
    write_coverage(tmp_path / "runs" / "one.coverage", [("a.ml", [1], b"")])
    write_coverage(tmp_path / "runs" / "nested" / "two.coverage", [("a.ml", [2], b"")])
    messages: list[str] = []
    coverage = load_coverage(
        [], [str(tmp_path / "runs")], [], [], echo=messages.append
    )
    assert coverage.counters == {"a.ml": [3]}
    assert len(messages) == 2


def test_load_coverage_without_inputs(tmp_path: Path) -> None:
    with pytest.raises(NoInputFiles):
        load_coverage([], [str(tmp_path / "nothing-here")], [], [])


def test_out_of_range_counter_fails_whether_or_not_merged(
    tmp_path: Path, write_coverage
) -> None:
    huge = tmp_path / "huge.coverage"
    huge.write_bytes(b"BISECT-COVERAGE-4 1 4 a.ml 1 %d 0  " % 10**30)
    empty = write_coverage(tmp_path / "empty.coverage", [("a.ml", [], b"")])
    with pytest.raises(MalformedInput):
        aggregate([huge])
    with pytest.raises(MalformedInput):
        aggregate([huge, empty])


def test_load_coverage_normalizes_against_given_cwd(
    tmp_path: Path, write_coverage
) -> None:
    absolute = str(tmp_path / "src" / "a.ml")
    write_coverage(tmp_path / "run.coverage", [(absolute, [1], b"")])
    coverage = load_coverage([], [], ["src/a.ml"], [], cwd=str(tmp_path), environ={})
    assert coverage.counters == {os.path.join("src", "a.ml"): [1]}
