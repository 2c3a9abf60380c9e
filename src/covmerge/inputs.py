"""Locating run files on disk."""

from __future__ import annotations

import os
from typing import Callable, Iterable, Mapping, Sequence

from covmerge.exceptions import NoInputFiles

RUN_FILE_EXTENSION = ".coverage"
BUILD_DIRECTORY = "_build"
TARGET_DIR_ENV = "cur__target_dir"

FilenameFilter = Callable[[str, str], bool]


def has_extension(extension: str, filename: str) -> bool:
    return filename.endswith(extension)


def is_run_file(_path: str, filename: str) -> bool:
    return has_extension(RUN_FILE_EXTENSION, filename)


def list_recursively(directory: str, filename_filter: FilenameFilter) -> list[str]:
    """Collect the files under ``directory`` accepted by ``filename_filter``.

    Entries are visited in sorted order. Subdirectories that cannot be read
    are skipped.
    """
    files: list[str] = []

    def _traverse(current: str) -> None:
        try:
            entries = sorted(os.listdir(current))
        except OSError:
            if current == directory:
                raise
            return
        for entry in entries:
            entry_path = os.path.join(current, entry)
            if os.path.isdir(entry_path):
                _traverse(entry_path)
            elif filename_filter(entry_path, entry):
                files.append(entry_path)

    _traverse(directory)
    return files


def _is_directory(path: str) -> bool:
    return os.path.exists(path) and os.path.isdir(path)


def _default_run_files(base: str, environ: Mapping[str, str]) -> list[str]:
    in_current_directory = [
        os.path.join(base, entry)
        for entry in sorted(os.listdir(base))
        if is_run_file(os.path.join(base, entry), entry)
        and not os.path.isdir(os.path.join(base, entry))
    ]
    build_directory = os.path.join(base, BUILD_DIRECTORY)
    in_build_directory = (
        list_recursively(build_directory, is_run_file)
        if _is_directory(build_directory)
        else []
    )
    target_directory = environ.get(TARGET_DIR_ENV)
    in_target_directory = (
        list_recursively(target_directory, is_run_file)
        if target_directory is not None and _is_directory(target_directory)
        else []
    )
    return in_current_directory + in_build_directory + in_target_directory


def list_run_files(
    files: Sequence[str],
    search_paths: Sequence[str],
    *,
    cwd: str | None = None,
    environ: Mapping[str, str] | None = None,
    echo: Callable[[str], None] | None = None,
) -> list[str]:
    """Resolve the run files to load.

    Explicit files and search directories win. Without either, ``*.coverage``
    files are picked up from the working directory, ``_build`` and the
    directory named by ``cur__target_dir``.
    """
    base = cwd if cwd is not None else os.curdir
    env = os.environ if environ is None else environ
    if not files and not search_paths:
        run_files = _default_run_files(base, env)
    else:
        run_files = list(files)
        for directory in search_paths:
            if _is_directory(directory):
                run_files.extend(list_recursively(directory, is_run_file))

    if echo is not None and (search_paths or not files):
        _report_directories(run_files, echo)

    if not run_files:
        raise NoInputFiles()
    return run_files


def _report_directories(run_files: Iterable[str], echo: Callable[[str], None]) -> None:
    directories = sorted({os.path.dirname(path) or os.curdir for path in run_files})
    for directory in directories:
        echo(f"found coverage files in '{directory}{os.sep}'")
