from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel

from covmerge.aggregate import AggregateCoverage
from covmerge.counts import Counts


class CountsDTO(BaseModel):
    visited: int
    total: int

    @classmethod
    def from_counts(cls, counts: Counts) -> "CountsDTO":
        return cls(visited=counts.visited, total=counts.total)


class FileCountsDTO(BaseModel):
    source_file: str
    points: int
    counts: CountsDTO


class CoverageSummaryDTO(BaseModel):
    run_files: List[str]
    files: List[FileCountsDTO]
    total: CountsDTO

    @classmethod
    def from_coverage(
        cls, coverage: AggregateCoverage
    ) -> "CoverageSummaryDTO":
        per_file: Dict[str, Counts] = coverage.file_counts()
        return cls(
            run_files=list(coverage.run_files),
            files=[
                FileCountsDTO(
                    source_file=source_file,
                    points=len(coverage.counters[source_file]),
                    counts=CountsDTO.from_counts(file_counts),
                )
                for source_file, file_counts in per_file.items()
            ],
            total=CountsDTO.from_counts(coverage.total_counts()),
        )
