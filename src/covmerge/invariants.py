"""Invariant markers."""

from __future__ import annotations

from typing import NoReturn

from covmerge.exceptions import NeverThrown


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable.

    The env payload is metadata only and is attached to the raised exception.
    """
    raise NeverThrown(reason or "never() marker reached", env=env)


def require_positive(value: object, *, reason: str, **env: object) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        never(reason, value=value, **env)
    if isinstance(value, bool) or (isinstance(value, float) and value != number):
        never(reason, value=value, **env)
    if number <= 0:
        never(reason, value=value, **env)
    return number
