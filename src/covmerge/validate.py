"""Checking that every expected source file made it into the coverage data."""

from __future__ import annotations

import os
from typing import Iterable, Sequence

from covmerge.exceptions import MissingExpectedSources
from covmerge.inputs import has_extension, list_recursively

SOURCE_EXTENSIONS: tuple[str, ...] = (".ml", ".re", ".mll", ".mly")


def strip_extensions(path: str) -> str:
    """Drop everything from the first ``.`` of the base name onwards.

    ``src/a.pp.ml`` and ``src/a.ml`` both become ``src/a``.
    """
    dirname, basename = os.path.split(path)
    stem, _dot, _suffix = basename.partition(".")
    return os.path.normpath(os.path.join(dirname, stem))


def list_expected_files(
    paths: Iterable[str], *, extensions: Sequence[str] = SOURCE_EXTENSIONS
) -> list[str]:
    """Expand directories into their source files; plain paths pass through."""

    def _is_source(_path: str, filename: str) -> bool:
        return any(has_extension(extension, filename) for extension in extensions)

    expanded: set[str] = set()
    for path in paths:
        if os.path.isdir(path):
            expanded.update(list_recursively(path, _is_source))
        else:
            expanded.add(path)
    return sorted(expanded)


def filtered_expected_files(
    expect: Iterable[str],
    do_not_expect: Iterable[str],
    *,
    extensions: Sequence[str] = SOURCE_EXTENSIONS,
) -> list[str]:
    expected_files = list_expected_files(expect, extensions=extensions)
    excluded_files = set(list_expected_files(do_not_expect, extensions=extensions))
    return [path for path in expected_files if path not in excluded_files]


def missing_expected_sources(
    present_files: Iterable[str],
    expect: Iterable[str],
    do_not_expect: Iterable[str],
    *,
    extensions: Sequence[str] = SOURCE_EXTENSIONS,
) -> list[str]:
    present = {strip_extensions(path) for path in present_files}
    return [
        path
        for path in filtered_expected_files(
            expect, do_not_expect, extensions=extensions
        )
        if strip_extensions(path) not in present
    ]


def expected_sources_are_present(
    present_files: Iterable[str],
    expect: Iterable[str],
    do_not_expect: Iterable[str],
    *,
    extensions: Sequence[str] = SOURCE_EXTENSIONS,
) -> None:
    missing = missing_expected_sources(
        present_files, expect, do_not_expect, extensions=extensions
    )
    if missing:
        raise MissingExpectedSources(missing)
