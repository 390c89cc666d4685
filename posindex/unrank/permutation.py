from __future__ import annotations

from typing import Sequence, Tuple

from .classification import FUNDAMENTAL_SET_DIVISORS
from .errors import PermutationUnresolved


def _per_cost_counts(row: Sequence[int], divisor: int, cost: int) -> Tuple[int, int]:
    """Return ``(count, offset)`` of distinct permutations at exactly ``cost``."""
    upto = row[cost] // divisor
    offset = row[cost - 1] // divisor if cost > 0 else 0
    count = upto - offset
    if count < 0:
        raise PermutationUnresolved("negative permutation count", cost=cost)
    return count, offset


def decompose_permutation_index(
    pawn_slack: Sequence[int],
    chessmen_slack: int,
    cost_boundaries: Sequence[Sequence[int]],
    fundamental_classes: Sequence[int],
    index: int,
) -> Tuple[int, int]:
    """Split a combined rank into one local permutation index per side.

    Pairs of additional promotion costs ``(i, j)`` are visited in
    lexicographic order, side 0's cost varying slowest. Side 0 may spend up to
    ``min(pawn_slack[0], chessmen_slack)``, side 1 what remains of the shared
    chessmen budget. Each pair owns ``p0 * p1`` consecutive ranks, where
    ``p`` is the number of distinct permutations at that exact cost once the
    cumulative boundaries are divided by the side's fundamental-set divisor.

    Args:
        pawn_slack: Per-side pawn budget.
        chessmen_slack: Capture budget shared by both sides.
        cost_boundaries: Per-side cumulative boundary rows.
        fundamental_classes: Per-side fundamental set class.
        index: Combined rank.

    Returns:
        Tuple[int, int]: Local permutation index of side 0 and side 1.

    Raises:
        PermutationUnresolved: If ``index`` is not below the total number of
            permutation pairs allowed by the budgets.
    """
    divisors = [FUNDAMENTAL_SET_DIVISORS[f] for f in fundamental_classes]
    row0, row1 = cost_boundaries[0], cost_boundaries[1]
    start = index

    max_cost0 = min(pawn_slack[0], chessmen_slack, len(row0) - 1)
    for i in range(max_cost0 + 1):
        p0, offset0 = _per_cost_counts(row0, divisors[0], i)

        max_cost1 = min(pawn_slack[1], chessmen_slack - i, len(row1) - 1)
        for j in range(max_cost1 + 1):
            p1, offset1 = _per_cost_counts(row1, divisors[1], j)
            block = p0 * p1
            if index < block:
                local0, local1 = divmod(index, p1)
                return offset0 + local0, offset1 + local1
            index -= block

    raise PermutationUnresolved("couldn't get permutation index", index=start)
