from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT / "src") not in sys.path:
    sys.path.insert(0, str(ROOT / "src"))


import pytest

from covmerge.loader import RunFileEntry, write_run_file


@pytest.fixture
def write_coverage():
    def _write(
        path: Path,
        entries: list[tuple[str, list[int], bytes]],
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_run_file(
            path,
            [
                RunFileEntry(
                    source_file=source_file,
                    counters=tuple(counters),
                    points=points,
                )
                for source_file, counters, points in entries
            ],
        )
        return path

    return _write
