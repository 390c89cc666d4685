"""Equality-pattern classes of per-side piece-count vectors.

Fundamental set classes (letters mark equal counts, slots in order):

    0 = (a, b, c, d)
    1 = (a, a, b, c)
    2 = (a, a, a, b)
    3 = (a, a, a, a)
    4 = (a, a, b, b)
    5 = (a, b, b, c)
    6 = (a, b, b, b)
    7 = (a, b, c, c)

A class's divisor is the number of slot permutations that leave such a vector
unchanged.
"""

from __future__ import annotations

from typing import Sequence


ALL_DISTINCT, AABC, AAAB, AAAA, AABB, ABBC, ABBB, ABCC = range(8)
FUNDAMENTAL_SET_DIVISORS = (1, 2, 6, 24, 2 * 2, 2, 6, 2)
NUM_FUNDAMENTAL_SETS = len(FUNDAMENTAL_SET_DIVISORS)

COVERED_CAP = 2
NUM_COVERED_SETS = (COVERED_CAP + 1) ** 4


def _check(counts: Sequence[int]) -> None:
    if len(counts) != 4:
        raise ValueError(f"expected 4 piece counts, got {len(counts)}")


def fundamental_set_class(counts: Sequence[int]) -> int:
    """Classify four counts by which neighbouring slots are equal."""
    _check(counts)
    a, b, c, d = counts
    if a == b:
        if b == c:
            return AAAA if c == d else AAAB
        return AABB if c == d else AABC
    if b == c:
        return ABBB if c == d else ABBC
    return ABCC if c == d else ALL_DISTINCT


def fundamental_set_divisor(counts: Sequence[int]) -> int:
    return FUNDAMENTAL_SET_DIVISORS[fundamental_set_class(counts)]


def covered_set_class(counts: Sequence[int]) -> int:
    """Classify counts capped at 2 (none / one / two or more per slot).

    The capped vector is read as a base-3 number with slot 0 most significant.
    """
    _check(counts)
    idx = 0
    for c in counts:
        if c < 0:
            raise ValueError("piece counts must be non-negative")
        idx = idx * (COVERED_CAP + 1) + min(c, COVERED_CAP)
    return idx
