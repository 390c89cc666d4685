from __future__ import annotations

from functools import lru_cache
from math import comb
from typing import List, Optional, Sequence

from ..engine.bitboard import NUM_SQUARES, deposit
from .errors import PlacementImpossible


@lru_cache(maxsize=None)
def _binomial_rows(n: int) -> tuple:
    return tuple(tuple(comb(a, b) for b in range(n + 1)) for a in range(n + 1))


def binomial_table(n: int = NUM_SQUARES) -> List[List[int]]:
    """Return ``C[a][b]`` for ``0 <= a, b <= n`` (zero where ``b > a``)."""
    return [list(row) for row in _binomial_rows(n)]


def unrank_subset(
    k: int, n: int, rank: int, binomials: Optional[Sequence[Sequence[int]]] = None
) -> int:
    """Return the ``rank``-th k-subset of ``n`` slots as a bit pattern.

    Subsets are ordered by the combinatorial number system: slots are scanned
    from 0 upward and a chessman goes on slot ``i`` while ``rank`` is below the
    number of ways to place the remaining ``k - 1`` chessmen after it.

    Args:
        k (int): Number of chessmen to place.
        n (int): Number of free slots.
        rank (int): Rank in ``[0, C(n, k))``.
        binomials: Optional precomputed table; ``math.comb`` is used otherwise.

    Returns:
        int: Pattern with exactly ``k`` bits set among bits ``0..n-1``.

    Raises:
        PlacementImpossible: If ``rank`` is not in range.
    """
    if k == 0:
        return 0
    if rank < 0:
        raise PlacementImpossible(f"couldn't place chessmen: negative rank {rank}", k=k, n=n)

    def choose(a: int, b: int) -> int:
        if binomials is not None:
            return binomials[a][b]
        return comb(a, b)

    pattern = 0
    slot = 0
    remaining = k
    while remaining > 0 and slot <= n - remaining:
        count = choose(n - 1 - slot, remaining - 1)
        if rank < count:
            pattern |= 1 << slot
            remaining -= 1
        else:
            rank -= count
        slot += 1

    if remaining:
        raise PlacementImpossible("couldn't place chessmen", k=k, n=n, rank=rank)
    return pattern


def scatter(pattern: int, occupied: int) -> int:
    """Map the i-th bit of ``pattern`` onto the i-th free (unset) square of ``occupied``."""
    return deposit(pattern, ~occupied)
