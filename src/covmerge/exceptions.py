"""Failure kinds raised while loading and checking coverage run files."""

from __future__ import annotations

from typing import Iterable


class CovmergeError(RuntimeError):
    """Base class for every reportable covmerge failure."""


class MalformedInput(CovmergeError, ValueError):
    """A run file could not be decoded.

    Covers a truncated or mismatched magic number as well as any structural
    decode failure. Carries the offending file and a human-readable reason.
    """

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class InputIOFailure(CovmergeError):
    """A run file could not be opened or read."""

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class NoInputFiles(CovmergeError):
    def __init__(
        self, message: str = "no coverage files given on command line or found"
    ) -> None:
        super().__init__(message)


class MissingExpectedSources(CovmergeError):
    """One or more expected source files have no coverage data."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = tuple(missing)
        super().__init__("\n".join(self.messages))

    @property
    def messages(self) -> list[str]:
        return [
            f"expected file '{path}' is not included in the report"
            for path in self.missing
        ]


class NeverRaise(RuntimeError):
    """Sentinel exception for code paths that must be unreachable.

    Raising it signals that an internal invariant was broken; the optional env
    payload records the values that broke it.
    """

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.reason = message
        self.env = dict(env or {})


class NeverThrown(NeverRaise):
    """Alias for NeverRaise used by the explicit never() marker."""
