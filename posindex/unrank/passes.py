"""Ordered decode passes.

Every pass reads decisions off the shared index in a fixed global order,
either through the decision tree or by dividing by an option count, and writes
the bitboards it owns. The order here must match the order the enumeration
was built in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Tuple

from ..engine.bitboard import (
    EDGE_RANKS,
    NUM_SQUARES,
    bit,
    flip_vertical,
    popcount,
    square,
)
from ..engine.position import (
    KING,
    NUM_PIECE_TYPES_LESS_KING,
    NUM_SIDES,
    QUEEN,
    ROOK,
    Position,
    SideSet,
)
from .classification import fundamental_set_class
from .combinatorics import scatter, unrank_subset
from .errors import InternalInvariantViolation, PreconditionViolation
from .permutation import decompose_permutation_index
from .tables import DecodeTables
from .tree import DecisionTree, navigate


ENPASSANT_ROW = 3
NO_EN_PASSANT, EP_EDGE_AND_RIGHT, EP_LEFT_LESS_EDGE = range(3)
EP_EDGE_AND_RIGHT_VARIATIONS = 8
EP_LEFT_LESS_EDGE_VARIATIONS = 6

NO_FIXED_ROOKS, ONE_FIXED_ROOK, TWO_FIXED_ROOKS = range(3)
ONE_FIXED_ROOK_VARIATIONS = 2
KING_HOME_FILE = 4


@dataclass
class DecodeState:
    """Mutable state of a single decode.

    Owned by one call; nothing here is shared between decodes.
    """

    tree: DecisionTree
    tables: DecodeTables
    index: int
    node: int
    occupied: int = 0
    # Squares closed to side 1's pawns only
    shadow: int = 0
    pawns: List[int] = field(default_factory=lambda: [0, 0])
    pieces: List[List[int]] = field(default_factory=lambda: [[0] * 5, [0] * 5])
    side_fixed_rooks: List[int] = field(default_factory=lambda: [0, 0])
    fixed_rooks: int = 0
    en_passant: int = 0
    side0_is_black: bool = False
    side0_to_move: bool = False
    num_fixed_rooks: List[int] = field(default_factory=lambda: [0, 0])
    counts: List[List[int]] = field(
        default_factory=lambda: [[0] * NUM_PIECE_TYPES_LESS_KING for _ in range(NUM_SIDES)]
    )
    base_counts: List[List[int]] = field(default_factory=lambda: [[0] * 4, [0] * 4])
    promotions: List[int] = field(default_factory=lambda: [0, 0])
    # (label, squares) for every claim on the occupancy mask
    claims: List[Tuple[str, int]] = field(default_factory=list)

    # ---- index consumption ----
    def decide(self) -> int:
        """Consume one tree decision and return its ordinal."""
        self.node, ordinal, self.index = navigate(self.tree, self.node, self.index)
        return ordinal

    def divide(self, options: int) -> int:
        """Consume one decision among ``options`` and return it."""
        if options <= 0:
            raise PreconditionViolation("no options to choose from", options=options)
        self.index, rem = divmod(self.index, options)
        return rem

    # ---- occupancy ----
    def claim(self, label: str, squares: int) -> None:
        if squares & self.occupied:
            raise InternalInvariantViolation(
                "squares claimed twice", label=label, overlap=squares & self.occupied
            )
        self.occupied |= squares
        self.claims.append((label, squares))

    def free_squares(self) -> int:
        return NUM_SQUARES - popcount(self.occupied)

    def place(self, label: str, k: int) -> int:
        """Place ``k`` chessmen on free squares, consuming their arrangement."""
        if k == 0:
            return 0
        free = self.free_squares()
        if k > free:
            raise InternalInvariantViolation("more chessmen than free squares", k=k, free=free)
        binomials = self.tables.binomials
        rank = self.divide(binomials[free][k])
        squares = scatter(unrank_subset(k, free, rank, binomials), self.occupied)
        self.claim(label, squares)
        return squares

    def place_counted(self, label: str) -> Tuple[int, int]:
        """Read a count off the tree, then place that many chessmen."""
        k = self.decide()
        return k, self.place(label, k)

    def freeze(self) -> Position:
        sides = tuple(
            SideSet(
                pawns=self.pawns[s],
                pieces=(
                    self.pieces[s][0],
                    self.pieces[s][1],
                    self.pieces[s][2],
                    self.pieces[s][3],
                    self.pieces[s][4],
                ),
                fixed_rooks=self.side_fixed_rooks[s],
            )
            for s in range(NUM_SIDES)
        )
        return Position(
            sides=(sides[0], sides[1]),
            fixed_rooks=self.fixed_rooks,
            en_passant=self.en_passant,
            side0_is_black=self.side0_is_black,
            side0_to_move=self.side0_to_move,
        )


def pass_color(state: DecodeState) -> None:
    state.side0_is_black = state.divide(2) == 1


def pass_en_passant(state: DecodeState) -> None:
    """Place the pawn that just double-pushed and the pawn able to capture it.

    The en-passant pawn belongs to side 0 on ``ENPASSANT_ROW``; the two squares
    it passed over stay empty for the rest of the decode.
    """
    case = state.decide()
    if case == NO_EN_PASSANT:
        return
    if case == EP_EDGE_AND_RIGHT:
        rem = state.divide(EP_EDGE_AND_RIGHT_VARIATIONS)
        if rem == EP_EDGE_AND_RIGHT_VARIATIONS - 1:
            # Edge file: the only capturer stands on the left
            pawn = bit(square(ENPASSANT_ROW, 7))
            capturer = pawn >> 1
        else:
            pawn = bit(square(ENPASSANT_ROW, rem))
            capturer = pawn << 1
    elif case == EP_LEFT_LESS_EDGE:
        rem = state.divide(EP_LEFT_LESS_EDGE_VARIATIONS)
        pawn = bit(square(ENPASSANT_ROW, rem + 1))
        capturer = pawn >> 1
        # A second capturer on the right is enumerated by EP_EDGE_AND_RIGHT
        state.shadow = pawn << 1
    else:
        raise InternalInvariantViolation("unknown en passant case", case=case)

    state.en_passant = pawn
    state.pawns[0] = pawn
    state.pawns[1] = capturer
    state.claim("en_passant", pawn | capturer)
    state.claim("en_passant_path", (pawn >> 8) | (pawn >> 16))
    state.occupied |= state.shadow


def pass_pawns(state: DecodeState) -> None:
    """Place remaining pawns, side 1 first; the shadow only binds side 1."""
    state.occupied |= EDGE_RANKS
    _, squares = state.place_counted("pawns[1]")
    state.pawns[1] |= squares

    state.occupied &= ~state.shadow
    state.shadow = 0
    _, squares = state.place_counted("pawns[0]")
    state.pawns[0] |= squares
    state.occupied &= ~EDGE_RANKS


def _pawn_counts_equal(state: DecodeState) -> bool:
    return popcount(state.pawns[0]) == popcount(state.pawns[1])


def pass_side_to_move_by_pawns(state: DecodeState) -> None:
    # Without an en-passant pawn a position and its colour mirror are
    # otherwise indistinguishable
    if not state.en_passant and not _pawn_counts_equal(state):
        state.side0_to_move = state.divide(2) == 1


def _fixed_rooks_and_king(state: DecodeState, side: int) -> None:
    num = state.decide()
    if num == NO_FIXED_ROOKS:
        rooks = 0
    elif num == ONE_FIXED_ROOK:
        # 0 = a-file (queenside), 1 = h-file (kingside)
        rooks = bit(7 * state.divide(ONE_FIXED_ROOK_VARIATIONS))
    elif num == TWO_FIXED_ROOKS:
        rooks = bit(0) | bit(7)
    else:
        raise InternalInvariantViolation("invalid number of fixed rooks", side=side, num=num)

    king = bit(KING_HOME_FILE) if num > 0 else 0
    if side == 1:
        rooks = flip_vertical(rooks)
        king = flip_vertical(king)

    state.num_fixed_rooks[side] = num
    state.side_fixed_rooks[side] = rooks
    state.fixed_rooks |= rooks
    state.pieces[side][KING] = king
    state.claim(f"fixed_rooks[{side}]", rooks | king)


def pass_fixed_rooks_and_kings(state: DecodeState) -> None:
    for side in range(NUM_SIDES):
        _fixed_rooks_and_king(state, side)


def pass_side_to_move_by_fixed_rooks(state: DecodeState) -> None:
    nfr = state.num_fixed_rooks
    if not state.en_passant and _pawn_counts_equal(state) and nfr[0] != nfr[1]:
        state.side0_to_move = state.divide(2) == 1


def pass_pieces(state: DecodeState) -> None:
    """Place non-king pieces into provisional slots.

    Counts are non-increasing across slots, so the first zero ends the side.
    Counts above the scenario's baseline are promoted pawns.
    """
    for side in range(NUM_SIDES):
        base = state.tables.base_pieces[state.num_fixed_rooks[side]]
        for slot in range(NUM_PIECE_TYPES_LESS_KING):
            count, squares = state.place_counted(f"pieces[{side}][{slot}]")
            state.pieces[side][slot] = squares
            state.counts[side][slot] = count
            state.base_counts[side][slot] = min(count, base[slot])
            if count > base[slot]:
                state.promotions[side] += count - base[slot]
            if count == 0:
                break


def pass_free_kings(state: DecodeState) -> None:
    """Kings without a fixed rook go on any free square."""
    for side in range(NUM_SIDES):
        if state.num_fixed_rooks[side] == NO_FIXED_ROOKS:
            state.pieces[side][KING] = state.place(f"king[{side}]", 1)


def pass_permutations(state: DecodeState) -> None:
    """Reassign provisional slots to true piece types.

    The rest of the index is a combined rank of one permutation per side.
    """
    tables = state.tables
    nfr = state.num_fixed_rooks
    num_pawns = [popcount(state.pawns[s]) for s in range(NUM_SIDES)]
    base_capturable = [nfr[s] + sum(state.base_counts[s]) for s in range(NUM_SIDES)]

    covered = [tables.covered_set(state.counts[s]) for s in range(NUM_SIDES)]
    fundamental = [fundamental_set_class(state.counts[s]) for s in range(NUM_SIDES)]
    rows = [tables.cost_row(nfr[s], covered[s]) for s in range(NUM_SIDES)]

    slack = tables.promotion_slack(num_pawns, base_capturable, state.promotions)
    local = decompose_permutation_index(
        slack.pawn_slack,
        min(slack.chessmen_slack[0], slack.chessmen_slack[1]),
        rows,
        fundamental,
        state.index,
    )
    state.index = 0

    for side in range(NUM_SIDES):
        perm = tables.permutation(nfr[side], covered[side], fundamental[side], local[side])
        provisional = list(state.pieces[side][:NUM_PIECE_TYPES_LESS_KING])
        for j in range(NUM_PIECE_TYPES_LESS_KING):
            state.pieces[side][j] = provisional[perm[j]]


def pass_unswap_rook_queen(state: DecodeState) -> None:
    for side in range(NUM_SIDES):
        pieces = state.pieces[side]
        if state.num_fixed_rooks[side] == TWO_FIXED_ROOKS:
            # Tables for this scenario list queens in the rook slot
            pieces[ROOK], pieces[QUEEN] = pieces[QUEEN], pieces[ROOK]
        pieces[ROOK] |= state.side_fixed_rooks[side]


PIPELINE: Tuple[Callable[[DecodeState], None], ...] = (
    pass_color,
    pass_en_passant,
    pass_pawns,
    pass_side_to_move_by_pawns,
    pass_fixed_rooks_and_kings,
    pass_side_to_move_by_fixed_rooks,
    pass_pieces,
    pass_free_kings,
    pass_permutations,
    pass_unswap_rook_queen,
)
