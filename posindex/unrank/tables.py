from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from ..engine.bitboard import NUM_SQUARES
from .classification import (
    COVERED_CAP,
    NUM_COVERED_SETS,
    NUM_FUNDAMENTAL_SETS,
    covered_set_class,
)
from .combinatorics import binomial_table
from .errors import PermutationUnresolved, TableConfigurationError
from .slack import PromotionSlackFn, promotion_slack


logger = logging.getLogger(__name__)

NUM_FIXED_ROOK_SCENARIOS = 3

# Non-promoted piece counts per provisional slot, by number of fixed rooks
DEFAULT_BASE_PIECES: Tuple[Tuple[int, int, int, int], ...] = (
    (2, 2, 2, 1),
    (2, 2, 1, 1),
    (2, 2, 1, 0),
)

CostKey = Tuple[int, int]
PermKey = Tuple[int, int, int]
CountsKey = Tuple[int, int, int, int]


def _default_binomials() -> Tuple[Tuple[int, ...], ...]:
    return tuple(tuple(row) for row in binomial_table(NUM_SQUARES))


@dataclass(frozen=True)
class DecodeTables:
    """Immutable lookup tables shared by every decode.

    Attributes:
        cost_boundaries: ``(scenario, covered_set) -> row``. Entry ``i`` of a
            row is the cumulative number of slot-to-type assignments (counted
            with multiplicity) whose additional promotion cost is ``<= i``.
        permutations: ``(scenario, covered_set, fundamental_set) -> list`` of
            explicit slot permutations, indexed by local permutation index.
        base_pieces: Non-promoted count per provisional slot, per fixed-rook
            scenario.
        binomials: ``C[n][k]`` over the board's square count.
        promotion_slack: Promotion budget service.
        covered_sets: Optional classifier from capped counts (each 0..2) to
            covered-set id. Without it the capped vector is read as base 3.
    """

    cost_boundaries: Mapping[CostKey, Tuple[int, ...]]
    permutations: Mapping[PermKey, Tuple[Tuple[int, ...], ...]]
    base_pieces: Tuple[Tuple[int, ...], ...] = DEFAULT_BASE_PIECES
    binomials: Tuple[Tuple[int, ...], ...] = field(
        default_factory=_default_binomials, repr=False
    )
    promotion_slack: PromotionSlackFn = field(default=promotion_slack, compare=False)
    covered_sets: Optional[Mapping[CountsKey, int]] = None

    def __post_init__(self) -> None:
        # Shared read-only between decodes
        object.__setattr__(self, "cost_boundaries", MappingProxyType(dict(self.cost_boundaries)))
        object.__setattr__(self, "permutations", MappingProxyType(dict(self.permutations)))
        if self.covered_sets is not None:
            object.__setattr__(self, "covered_sets", MappingProxyType(dict(self.covered_sets)))
        self.validate()

    def validate(self) -> None:
        """Check internal consistency once, independent of any decode."""
        if len(self.base_pieces) != NUM_FIXED_ROOK_SCENARIOS:
            raise TableConfigurationError(
                f"base_pieces needs {NUM_FIXED_ROOK_SCENARIOS} scenarios"
            )
        for scenario, row in enumerate(self.base_pieces):
            if len(row) != 4 or any(c < 0 for c in row):
                raise TableConfigurationError("invalid base_pieces row", scenario=scenario)

        if len(self.binomials) <= NUM_SQUARES:
            raise TableConfigurationError("binomial table must cover every square count")

        for key, row in self.cost_boundaries.items():
            self._check_key(key[0], key[1])
            if not row:
                raise TableConfigurationError("empty cost boundary row", key=key)
            prev = 0
            for v in row:
                if v < prev:
                    raise TableConfigurationError(
                        "cost boundary row must be non-negative and non-decreasing", key=key
                    )
                prev = v

        for key, perms in self.permutations.items():
            self._check_key(key[0], key[1])
            if not 0 <= key[2] < NUM_FUNDAMENTAL_SETS:
                raise TableConfigurationError("fundamental set out of range", key=key)
            for perm in perms:
                if sorted(perm) != [0, 1, 2, 3]:
                    raise TableConfigurationError(
                        "permutation must reorder slots 0..3", key=key, permutation=perm
                    )

        if self.covered_sets is not None:
            for counts, covered in self.covered_sets.items():
                if len(counts) != 4 or any(not 0 <= c <= COVERED_CAP for c in counts):
                    raise TableConfigurationError(
                        "covered set key must be four counts capped at 2", counts=counts
                    )
                if not 0 <= covered < NUM_COVERED_SETS:
                    raise TableConfigurationError("covered set out of range", covered=covered)

    @staticmethod
    def _check_key(scenario: int, covered: int) -> None:
        if not 0 <= scenario < NUM_FIXED_ROOK_SCENARIOS:
            raise TableConfigurationError("fixed-rook scenario out of range", scenario=scenario)
        if not 0 <= covered < NUM_COVERED_SETS:
            raise TableConfigurationError("covered set out of range", covered=covered)

    def covered_set(self, counts: Sequence[int]) -> int:
        if self.covered_sets is None:
            return covered_set_class(counts)
        capped = tuple(min(c, COVERED_CAP) for c in counts)
        covered = self.covered_sets.get(capped)  # type: ignore[arg-type]
        if covered is None:
            raise PermutationUnresolved("no covered set for piece counts", counts=capped)
        return covered

    def cost_row(self, scenario: int, covered: int) -> Tuple[int, ...]:
        row = self.cost_boundaries.get((scenario, covered))
        if row is None:
            raise PermutationUnresolved(
                "no cost boundaries for scenario", scenario=scenario, covered=covered
            )
        return row

    def permutation(
        self, scenario: int, covered: int, fundamental: int, local: int
    ) -> Tuple[int, ...]:
        perms = self.permutations.get((scenario, covered, fundamental))
        if perms is None or not 0 <= local < len(perms):
            raise PermutationUnresolved(
                "no permutation table entry",
                scenario=scenario,
                covered=covered,
                fundamental=fundamental,
                local=local,
            )
        return perms[local]


def tables_from_dict(data: Any, **overrides: Any) -> DecodeTables:
    """Build tables from a JSON-shaped document.

    Format::

        {
          "base_pieces": [[2, 2, 2, 1], [2, 2, 1, 1], [2, 2, 1, 0]],
          "cost_boundaries": [{"scenario": 0, "covered": 40, "values": [24]}],
          "permutations": [
            {"scenario": 0, "covered": 40, "fundamental": 3, "values": [[0, 1, 2, 3]]}
          ],
          "covered_sets": [{"counts": [2, 2, 1, 0], "id": 75}]
        }

    ``base_pieces`` and ``covered_sets`` are optional. Extra keyword arguments
    override fields (e.g. ``promotion_slack``).
    """
    if not isinstance(data, dict):
        raise TableConfigurationError("tables document must be an object")
    try:
        costs: Dict[CostKey, Tuple[int, ...]] = {}
        for ent in data.get("cost_boundaries", []):
            key = (int(ent["scenario"]), int(ent["covered"]))
            if key in costs:
                raise TableConfigurationError("duplicate cost boundary row", key=key)
            costs[key] = tuple(int(v) for v in ent["values"])

        perms: Dict[PermKey, Tuple[Tuple[int, ...], ...]] = {}
        for ent in data.get("permutations", []):
            pkey = (int(ent["scenario"]), int(ent["covered"]), int(ent["fundamental"]))
            if pkey in perms:
                raise TableConfigurationError("duplicate permutation list", key=pkey)
            perms[pkey] = tuple(tuple(int(i) for i in p) for p in ent["values"])

        kwargs: Dict[str, Any] = {"cost_boundaries": costs, "permutations": perms}
        if data.get("base_pieces") is not None:
            kwargs["base_pieces"] = tuple(
                tuple(int(c) for c in row) for row in data["base_pieces"]
            )
        if data.get("covered_sets") is not None:
            covered: Dict[CountsKey, int] = {}
            for ent in data["covered_sets"]:
                counts = tuple(int(c) for c in ent["counts"])
                if len(counts) != 4:
                    raise TableConfigurationError("covered set needs four counts", counts=counts)
                ckey = (counts[0], counts[1], counts[2], counts[3])
                if ckey in covered:
                    raise TableConfigurationError("duplicate covered set", counts=ckey)
                covered[ckey] = int(ent["id"])
            kwargs["covered_sets"] = covered
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, TableConfigurationError):
            raise
        raise TableConfigurationError(f"invalid tables document: {e}") from e
    kwargs.update(overrides)
    return DecodeTables(**kwargs)


def load_tables(path: str, **overrides: Any) -> DecodeTables:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise TableConfigurationError(f"invalid tables JSON: {e}") from e
    tables = tables_from_dict(data, **overrides)
    logger.info(
        "tables loaded",
        extra={
            "path": path,
            "cost_rows": len(tables.cost_boundaries),
            "permutation_lists": len(tables.permutations),
        },
    )
    return tables
