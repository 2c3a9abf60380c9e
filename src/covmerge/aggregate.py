"""Folding run files into one aggregate coverage dataset."""

from __future__ import annotations

import concurrent.futures
import functools
from dataclasses import dataclass, field
import os
from typing import Callable, Iterable, Iterator, Mapping, Sequence

from covmerge import counts
from covmerge.counts import Counts
from covmerge.inputs import list_run_files
from covmerge.invariants import require_positive
from covmerge.loader import RunFileEntry, load_run_file
from covmerge.saturating import elementwise_saturating_sum
from covmerge.validate import SOURCE_EXTENSIONS, expected_sources_are_present

RunFileLoader = Callable[[str], list[RunFileEntry]]


@dataclass
class AggregateCoverage:
    """Merged counters and points blobs, keyed by source file.

    Counters are summed with saturation; for points the last run file seen
    wins.
    """

    counters: dict[str, list[int]] = field(default_factory=dict)
    points: dict[str, bytes] = field(default_factory=dict)
    run_files: list[str] = field(default_factory=list)

    def present_files(self) -> list[str]:
        return list(self.counters)

    def file_counts(self) -> dict[str, Counts]:
        return {
            source_file: counts.counts_of_vector(vector)
            for source_file, vector in sorted(self.counters.items())
        }

    def total_counts(self) -> Counts:
        total = counts.make()
        for file_counts in self.file_counts().values():
            total = counts.add(total, file_counts)
        return total

    def entries(self) -> list[RunFileEntry]:
        return [
            RunFileEntry(
                source_file=source_file,
                counters=tuple(vector),
                points=self.points.get(source_file, b""),
            )
            for source_file, vector in sorted(self.counters.items())
        ]


def fold_entries(
    acc: AggregateCoverage, entries: Iterable[RunFileEntry]
) -> AggregateCoverage:
    for entry in entries:
        existing = acc.counters.get(entry.source_file)
        if existing is None:
            acc.counters[entry.source_file] = list(entry.counters)
        else:
            acc.counters[entry.source_file] = elementwise_saturating_sum(
                existing, entry.counters
            )
        acc.points[entry.source_file] = entry.points
    return acc


def _load_all(
    run_files: Sequence[str], *, workers: int, load: RunFileLoader
) -> Iterator[list[RunFileEntry]]:
    if workers == 1 or len(run_files) <= 1:
        for run_file in run_files:
            yield load(run_file)
        return
    with concurrent.futures.ThreadPoolExecutor(
        max_workers=min(workers, len(run_files))
    ) as executor:
        # map() yields in submission order and re-raises the first failure.
        yield from executor.map(load, run_files)


def aggregate(
    run_files: Iterable[str | os.PathLike[str]],
    *,
    workers: int = 1,
    load: RunFileLoader = load_run_file,
) -> AggregateCoverage:
    """Load every run file in order and merge them.

    Decoding may run on a thread pool; folding is always done here, in input
    order. The first decode or IO failure aborts the whole aggregation.
    """
    worker_count = require_positive(workers, reason="invalid aggregate worker count")
    paths = [os.fspath(run_file) for run_file in run_files]
    acc = AggregateCoverage(run_files=paths)
    for entries in _load_all(paths, workers=worker_count, load=load):
        fold_entries(acc, entries)
    return acc


def load_coverage(
    files: Sequence[str],
    search_paths: Sequence[str],
    expect: Sequence[str],
    do_not_expect: Sequence[str],
    *,
    workers: int = 1,
    extensions: Sequence[str] = SOURCE_EXTENSIONS,
    cwd: str | None = None,
    environ: Mapping[str, str] | None = None,
    echo: Callable[[str], None] | None = None,
) -> AggregateCoverage:
    run_files = list_run_files(
        files, search_paths, cwd=cwd, environ=environ, echo=echo
    )
    base = os.path.abspath(cwd) if cwd is not None else None
    coverage = aggregate(
        run_files,
        workers=workers,
        load=functools.partial(load_run_file, cwd=base),
    )
    expected_sources_are_present(
        coverage.present_files(), expect, do_not_expect, extensions=extensions
    )
    return coverage
