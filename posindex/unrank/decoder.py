from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..engine.position import Position
from .errors import DecodeError, IndexOutOfRangeError
from .passes import PIPELINE, DecodeState
from .tables import DecodeTables
from .tree import DecisionTree


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeOutcome:
    index: int
    position: Optional[Position] = None
    error: Optional[DecodeError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Decoder:
    """Turn indices into configurations.

    The tree and the tables are read-only and may be shared by any number of
    decoders and threads; every decode keeps its state local.
    """

    def __init__(self, tree: DecisionTree, tables: DecodeTables) -> None:
        self.tree = tree
        self.tables = tables

    @property
    def total(self) -> int:
        """Number of enumerated configurations; valid indices are ``[0, total)``."""
        return self.tree.total

    def check_index(self, index: object) -> int:
        if isinstance(index, bool) or not isinstance(index, int):
            raise IndexOutOfRangeError(f"index must be an integer, got {type(index).__name__}")
        if index < 0 or index >= self.total:
            raise IndexOutOfRangeError(
                "index out of range", index=index, total=self.total
            )
        return index

    def run(self, index: int) -> DecodeState:
        """Run every pass and return the final decode state."""
        state = DecodeState(
            tree=self.tree,
            tables=self.tables,
            index=self.check_index(index),
            node=self.tree.root,
        )
        for step in PIPELINE:
            step(state)
        return state

    def decode(self, index: int) -> Position:
        """Return the configuration at rank ``index``.

        Raises:
            IndexOutOfRangeError: If ``index`` is not in ``[0, total)``.
            DecodeError: If the tree or the tables turn out inconsistent.
        """
        start = time.perf_counter()
        position = self.run(index).freeze()
        logger.debug(
            "decoded",
            extra={
                "index": str(index),
                "duration_us": int((time.perf_counter() - start) * 1_000_000),
            },
        )
        return position

    def decode_many(self, indices: Iterable[int]) -> List[DecodeOutcome]:
        """Decode each index independently; failures are logged and skipped."""
        outcomes: List[DecodeOutcome] = []
        for index in indices:
            try:
                outcomes.append(DecodeOutcome(index=index, position=self.decode(index)))
            except DecodeError as e:
                logger.warning(
                    "decode failed",
                    extra={"index": str(index), "code": e.code, "kind": e.kind},
                )
                outcomes.append(DecodeOutcome(index=index, error=e))
        return outcomes
