from __future__ import annotations

import pytest

from posindex.unrank.classification import AAAA, AABB, ALL_DISTINCT
from posindex.unrank.errors import PermutationUnresolved
from posindex.unrank.permutation import decompose_permutation_index


def _total(pawn_slack, chessmen_slack, rows, divisors) -> int:
    total = 0
    for i in range(min(pawn_slack[0], chessmen_slack, len(rows[0]) - 1) + 1):
        p0 = rows[0][i] // divisors[0] - (rows[0][i - 1] // divisors[0] if i else 0)
        for j in range(min(pawn_slack[1], chessmen_slack - i, len(rows[1]) - 1) + 1):
            p1 = rows[1][j] // divisors[1] - (rows[1][j - 1] // divisors[1] if j else 0)
            total += p0 * p1
    return total


def test_decomposition_is_a_bijection_over_full_range() -> None:
    rows = [(4, 12, 24), (6, 24)]
    fundamental = [AABB, ALL_DISTINCT]  # divisors 4 and 1
    pawn_slack = [2, 1]
    chessmen_slack = 2
    total = _total(pawn_slack, chessmen_slack, rows, [4, 1])
    # (i, j) blocks: (0,0) 1*6, (0,1) 1*18, (1,0) 2*6, (1,1) 2*18, (2,0) 3*6
    assert total == 6 + 18 + 12 + 36 + 18

    pairs = [
        decompose_permutation_index(pawn_slack, chessmen_slack, rows, fundamental, r)
        for r in range(total)
    ]
    assert len(set(pairs)) == total
    for local0, local1 in pairs:
        assert 0 <= local0 < 24 // 4
        assert 0 <= local1 < 24

    with pytest.raises(PermutationUnresolved):
        decompose_permutation_index(pawn_slack, chessmen_slack, rows, fundamental, total)


def test_side0_cost_varies_slowest() -> None:
    rows = [(2, 4), (3, 6)]
    fundamental = [ALL_DISTINCT, ALL_DISTINCT]
    got = [decompose_permutation_index([1, 1], 5, rows, fundamental, r) for r in range(16)]
    # Block (0, 0): 2 x 3, row-major in (local0, local1)
    assert got[:6] == [(0, 0), (0, 1), (0, 2), (1, 0), (1, 1), (1, 2)]
    # Block (0, 1): side 1 moves to its cost-1 permutations 3..5
    assert got[6:12] == [(0, 3), (0, 4), (0, 5), (1, 3), (1, 4), (1, 5)]
    # Block (1, 0): side 0 moves to its cost-1 permutations 2..3
    assert got[12:15] == [(2, 0), (2, 1), (2, 2)]
    assert got[15] == (3, 0)


def test_budget_limits_the_blocks() -> None:
    rows = [(24, 48), (24, 48)]
    fundamental = [AAAA, AAAA]  # one permutation per cost level
    # No chessmen slack: only the cost-0 pair
    assert decompose_permutation_index([5, 5], 0, rows, fundamental, 0) == (0, 0)
    with pytest.raises(PermutationUnresolved):
        decompose_permutation_index([5, 5], 0, rows, fundamental, 1)
    # Shared budget of 1: (0,0), (0,1), (1,0)
    got = [decompose_permutation_index([5, 5], 1, rows, fundamental, r) for r in range(3)]
    assert got == [(0, 0), (0, 1), (1, 0)]
    # Pawn slack of side 1 is zero: side 1 stays at cost 0
    got = [decompose_permutation_index([5, 0], 1, rows, fundamental, r) for r in range(2)]
    assert got == [(0, 0), (1, 0)]


def test_decreasing_row_is_unresolved() -> None:
    with pytest.raises(PermutationUnresolved):
        decompose_permutation_index([1, 1], 1, [(24, 0), (24,)], [AAAA, AAAA], 1)
