"""Visitation count statistics, used per file and for the whole project."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from covmerge.saturating import saturating_add


@dataclass
class Counts:
    visited: int = 0
    total: int = 0


def make() -> Counts:
    return Counts()


def update(counts: Counts, observed: bool) -> None:
    """Count one more point; ``visited`` only moves when it was observed."""
    counts.total = saturating_add(counts.total, 1)
    if observed:
        counts.visited = saturating_add(counts.visited, 1)


def add(x: Counts, y: Counts) -> Counts:
    return Counts(
        visited=saturating_add(x.visited, y.visited),
        total=saturating_add(x.total, y.total),
    )


def counts_of_vector(vector: Iterable[int]) -> Counts:
    counts = make()
    for value in vector:
        update(counts, value > 0)
    return counts
