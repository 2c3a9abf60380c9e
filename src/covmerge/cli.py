from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional
import json

import typer

from covmerge.aggregate import AggregateCoverage, load_coverage
from covmerge.config import (
    aggregate_defaults,
    expect_defaults,
    inputs_defaults,
    merge_payload,
    normalize_path_list,
    source_extensions,
    worker_count,
)
from covmerge.exceptions import CovmergeError, MissingExpectedSources, NeverThrown
from covmerge.loader import write_run_file
from covmerge.schema import CoverageSummaryDTO
from covmerge.validate import SOURCE_EXTENSIONS

app = typer.Typer(add_completion=False)


@dataclass(frozen=True)
class LoadOptions:
    files: tuple[str, ...]
    search_paths: tuple[str, ...]
    expect: tuple[str, ...]
    do_not_expect: tuple[str, ...]
    workers: int
    extensions: tuple[str, ...]


def resolve_load_options(
    *,
    files: Optional[List[Path]],
    coverage_path: Optional[List[str]],
    expect: Optional[List[str]],
    do_not_expect: Optional[List[str]],
    workers: Optional[int],
    root: Path,
    config: Optional[Path],
) -> LoadOptions:
    """Combine command line values with ``covmerge.toml`` defaults."""
    inputs_section = merge_payload(
        {"search_paths": coverage_path or None},
        inputs_defaults(root=root, config_path=config),
    )
    expect_section = merge_payload(
        {"expect": expect or None, "do_not_expect": do_not_expect or None},
        expect_defaults(root=root, config_path=config),
    )
    aggregate_section = merge_payload(
        {"workers": workers},
        aggregate_defaults(root=root, config_path=config),
    )
    try:
        worker_total = worker_count(aggregate_section)
    except NeverThrown as exc:
        raise typer.BadParameter(f"{exc.reason}: {exc.env.get('workers')!r}") from exc
    extensions = source_extensions(expect_section) or list(SOURCE_EXTENSIONS)
    return LoadOptions(
        files=tuple(str(path) for path in files or []),
        search_paths=tuple(normalize_path_list(inputs_section.get("search_paths"))),
        expect=tuple(normalize_path_list(expect_section.get("expect"))),
        do_not_expect=tuple(normalize_path_list(expect_section.get("do_not_expect"))),
        workers=worker_total,
        extensions=tuple(extensions),
    )


def _info_echo(verbose: bool) -> Callable[[str], None] | None:
    if not verbose:
        return None

    def _echo(message: str) -> None:
        typer.echo(f"Info: {message}", err=True)

    return _echo


def run_load(
    options: LoadOptions,
    *,
    verbose: bool = False,
) -> AggregateCoverage:
    try:
        return load_coverage(
            list(options.files),
            list(options.search_paths),
            list(options.expect),
            list(options.do_not_expect),
            workers=options.workers,
            extensions=options.extensions,
            echo=_info_echo(verbose),
        )
    except MissingExpectedSources as exc:
        for message in exc.messages:
            typer.secho(f"Error: {message}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    except CovmergeError as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _percent(visited: int, total: int) -> str:
    if total == 0:
        return "100.00"
    return f"{visited * 100.0 / total:.2f}"


def _emit_summary(summary: CoverageSummaryDTO, *, per_file: bool) -> None:
    if per_file:
        for file_summary in summary.files:
            counts = file_summary.counts
            typer.echo(
                f"{_percent(counts.visited, counts.total):>7} %"
                f"   {counts.visited}/{counts.total}   {file_summary.source_file}"
            )
    total = summary.total
    typer.echo(
        f"Coverage: {total.visited}/{total.total} "
        f"({_percent(total.visited, total.total)}%)"
    )


_FILES_ARGUMENT_HELP = "Run files to load; searched for when omitted."


@app.command("summary")
def summary(
    files: List[Path] = typer.Argument(None, help=_FILES_ARGUMENT_HELP),
    coverage_path: Optional[List[str]] = typer.Option(
        None,
        "--coverage-path",
        help="Directory searched recursively for *.coverage files (repeatable).",
    ),
    expect: Optional[List[str]] = typer.Option(
        None, "--expect", help="Source file or directory that must be covered."
    ),
    do_not_expect: Optional[List[str]] = typer.Option(
        None, "--do-not-expect", help="Source file or directory to exempt."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", min=1),
    per_file: bool = typer.Option(False, "--per-file"),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable JSON."),
    verbose: bool = typer.Option(False, "--verbose/--quiet"),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Merge run files and print visited/total point counts."""
    options = resolve_load_options(
        files=files,
        coverage_path=coverage_path,
        expect=expect,
        do_not_expect=do_not_expect,
        workers=workers,
        root=root,
        config=config,
    )
    coverage = run_load(options, verbose=verbose)
    result = CoverageSummaryDTO.from_coverage(coverage)
    if json_output:
        typer.echo(json.dumps(result.model_dump(), indent=2, sort_keys=True))
        return
    _emit_summary(result, per_file=per_file)


@app.command("merge")
def merge(
    output: Path = typer.Argument(..., help="Run file to write."),
    files: List[Path] = typer.Argument(None, help=_FILES_ARGUMENT_HELP),
    coverage_path: Optional[List[str]] = typer.Option(
        None,
        "--coverage-path",
        help="Directory searched recursively for *.coverage files (repeatable).",
    ),
    expect: Optional[List[str]] = typer.Option(None, "--expect"),
    do_not_expect: Optional[List[str]] = typer.Option(None, "--do-not-expect"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1),
    verbose: bool = typer.Option(False, "--verbose/--quiet"),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
) -> None:
    """Merge run files into a single run file."""
    options = resolve_load_options(
        files=files,
        coverage_path=coverage_path,
        expect=expect,
        do_not_expect=do_not_expect,
        workers=workers,
        root=root,
        config=config,
    )
    coverage = run_load(options, verbose=verbose)
    try:
        write_run_file(output, coverage.entries())
    except CovmergeError as exc:
        typer.secho(f"Error: {exc}", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"Wrote merged coverage: {output}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
