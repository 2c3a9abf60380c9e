"""Saturating integer arithmetic over visitation counters.

Counters are summed across many run files, so the sum is clamped to the
signed 64-bit range instead of growing without bound:

- a value above ``MAX_INT`` is encoded by ``MAX_INT``;
- a value below ``MIN_INT`` is encoded by ``MIN_INT``.
"""

from __future__ import annotations

from itertools import zip_longest
from typing import Sequence

MAX_INT = 2**63 - 1
MIN_INT = -(2**63)


def saturating_add(x: int, y: int) -> int:
    total = x + y
    if total > MAX_INT:
        return MAX_INT
    if total < MIN_INT:
        return MIN_INT
    return total


def elementwise_saturating_sum(a: Sequence[int], b: Sequence[int]) -> list[int]:
    """Sum two counter vectors element by element.

    The result is as long as the longer input; missing elements of the
    shorter one count as 0.
    """
    return [saturating_add(x, y) for x, y in zip_longest(a, b, fillvalue=0)]
