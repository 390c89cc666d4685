import os
import sys
from typing import Callable, List, Sequence

import pytest


# Ensure the repository root is on sys.path for `from posindex...` imports
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from posindex.unrank.classification import (  # noqa: E402
    FUNDAMENTAL_SET_DIVISORS,
    NUM_COVERED_SETS,
)
from posindex.unrank.tables import DecodeTables  # noqa: E402
from posindex.unrank.tree import DecisionTree, TreeBuilder  # noqa: E402


IDENTITY = (0, 1, 2, 3)


def build_identity_tables(**overrides) -> DecodeTables:
    """Every scenario has a single cost level and only identity permutations."""
    costs = {}
    perms = {}
    for scenario in range(3):
        for covered in range(NUM_COVERED_SETS):
            costs[(scenario, covered)] = (24,)
            for fundamental, div in enumerate(FUNDAMENTAL_SET_DIVISORS):
                perms[(scenario, covered, fundamental)] = (IDENTITY,) * (24 // div)
    costs.update(overrides.pop("cost_boundaries", {}))
    perms.update(overrides.pop("permutations", {}))
    return DecodeTables(cost_boundaries=costs, permutations=perms, **overrides)


def build_chain(ordinals: Sequence[int], tail_size: int = 10**30) -> DecisionTree:
    """A tree whose only deep path takes ``ordinals`` in order.

    Every decision node has ``k`` unit leaves before the continuing child, so
    reaching ordinal ``k`` costs exactly ``k`` off the index.
    """
    builder = TreeBuilder()
    node = builder.leaf(tail_size)
    for k in reversed(ordinals):
        node = builder.node([builder.leaf(1) for _ in range(k)] + [node])
    return builder.build(node)


@pytest.fixture
def identity_tables() -> DecodeTables:
    return build_identity_tables()


@pytest.fixture
def make_tables() -> Callable[..., DecodeTables]:
    return build_identity_tables


@pytest.fixture
def chain_tree() -> Callable[[List[int]], DecisionTree]:
    return build_chain
