"""Loading a single run file into per-source-file entries."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Iterable

from covmerge import wire

RUN_FILE_DECODER = wire.array(
    wire.pair(wire.string, wire.pair(wire.array(wire.integer), wire.string))
)
RUN_FILE_ENCODER = wire.encode_array(
    wire.encode_pair(
        wire.encode_string,
        wire.encode_pair(wire.encode_array(wire.encode_integer), wire.encode_string),
    )
)


@dataclass(frozen=True)
class RunFileEntry:
    source_file: str
    counters: tuple[int, ...]
    points: bytes


def relative_path(path: str, cwd: str | None = None) -> str:
    """Strip the working directory prefix from an absolute path.

    Relative paths and absolute paths outside ``cwd`` are returned unchanged.
    """
    if not os.path.isabs(path):
        return path
    base = os.getcwd() if cwd is None else cwd
    prefix = base + os.sep
    if path.startswith(prefix):
        return path[len(prefix):]
    return path


def load_run_file(
    path: str | os.PathLike[str], *, cwd: str | None = None
) -> list[RunFileEntry]:
    decoded = wire.read(RUN_FILE_DECODER, filename=path)
    return [
        RunFileEntry(
            source_file=relative_path(os.fsdecode(source_file), cwd),
            counters=tuple(counters),
            points=points,
        )
        for source_file, (counters, points) in decoded
    ]


def write_run_file(
    path: str | os.PathLike[str], entries: Iterable[RunFileEntry]
) -> None:
    payload = [
        (os.fsencode(entry.source_file), (list(entry.counters), entry.points))
        for entry in entries
    ]
    wire.write(RUN_FILE_ENCODER, payload, filename=path)
