"""covmerge package root."""

from covmerge.exceptions import (
    CovmergeError,
    InputIOFailure,
    MalformedInput,
    MissingExpectedSources,
    NeverRaise,
    NeverThrown,
    NoInputFiles,
)
from covmerge.invariants import never

__all__ = [
    "__version__",
    "CovmergeError",
    "InputIOFailure",
    "MalformedInput",
    "MissingExpectedSources",
    "NeverRaise",
    "NeverThrown",
    "NoInputFiles",
    "never",
]

__version__ = "0.1.0"
