from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .bitboard import flip_vertical, iter_squares, popcount, square_to_str


# Piece indices inside SideSet.pieces
KNIGHT, BISHOP, ROOK, QUEEN, KING = range(5)
NUM_PIECE_TYPES_LESS_KING = 4
NUM_SIDES = 2

PIECE_TO_CHAR = {KNIGHT: "n", BISHOP: "b", ROOK: "r", QUEEN: "q", KING: "k"}


@dataclass(frozen=True)
class SideSet:
    """Bitboards owned by one side.

    Attributes:
        pawns (int): Pawn bitboard.
        pieces (Tuple[int, ...]): Bitboards indexed by KNIGHT..KING.
        fixed_rooks (int): Rooks that never moved (castling rooks). Also
            contained in ``pieces[ROOK]``.
    """

    pawns: int = 0
    pieces: Tuple[int, int, int, int, int] = (0, 0, 0, 0, 0)
    fixed_rooks: int = 0

    def occupancy(self) -> int:
        occ = self.pawns
        for bb in self.pieces:
            occ |= bb
        return occ

    def counts(self) -> List[int]:
        return [popcount(bb) for bb in self.pieces]


@dataclass(frozen=True)
class Position:
    """A decoded configuration.

    Notes:
    - Squares are 0..63 (a1=0 .. h8=63). Side 0 sits on ranks 1-2 side of the
      board and pushes pawns toward rank 8; side 1 is its vertical mirror.
    - ``side0_is_black`` only affects rendering; bitboards are never flipped.
    """

    sides: Tuple[SideSet, SideSet]
    fixed_rooks: int = 0
    en_passant: int = 0
    side0_is_black: bool = False
    side0_to_move: bool = False

    def occupancy(self) -> int:
        return self.sides[0].occupancy() | self.sides[1].occupancy()

    def to_fen(self) -> str:
        """Serialize the configuration into a FEN string.

        Side 0 is rendered as white unless ``side0_is_black``; in that case
        every bitboard is mirrored so black's home rank is rank 8. Halfmove
        clock and fullmove number are always ``0 1``.
        """
        white = 1 if self.side0_is_black else 0
        flip = flip_vertical if self.side0_is_black else (lambda bb: bb)

        board: Dict[int, str] = {}
        for side_idx, side in enumerate(self.sides):
            upper = side_idx == white
            for sq in iter_squares(flip(side.pawns)):
                board[sq] = "P" if upper else "p"
            for piece, bb in enumerate(side.pieces):
                ch = PIECE_TO_CHAR[piece]
                for sq in iter_squares(flip(bb)):
                    board[sq] = ch.upper() if upper else ch

        # Piece placement
        ranks_str: List[str] = []
        for rank_idx in range(7, -1, -1):
            run = 0
            row = []
            for file_idx in range(8):
                ch = board.get(rank_idx * 8 + file_idx)
                if ch is None:
                    run += 1
                else:
                    if run > 0:
                        row.append(str(run))
                        run = 0
                    row.append(ch)
            if run > 0:
                row.append(str(run))
            ranks_str.append("".join(row))
        placement = "/".join(ranks_str)

        side0_white = not self.side0_is_black
        if self.side0_to_move:
            stm = "w" if side0_white else "b"
        else:
            stm = "b" if side0_white else "w"

        castling = self._castling_rights(white)
        ep = self._en_passant_target()
        return f"{placement} {stm} {castling or '-'} {ep or '-'} 0 1"

    def _castling_rights(self, white: int) -> str:
        rights = ""
        # KQkq order: white first, kingside first
        for side_idx in (white, 1 - white):
            fr = self.sides[side_idx].fixed_rooks
            if side_idx == 1:
                fr = flip_vertical(fr)
            upper = side_idx == white
            if fr & (1 << 7):
                rights += "K" if upper else "k"
            if fr & 1:
                rights += "Q" if upper else "q"
        return rights

    def _en_passant_target(self) -> Optional[str]:
        if not self.en_passant:
            return None
        target = self.en_passant >> 8
        if self.side0_is_black:
            target = flip_vertical(target)
        return square_to_str(target.bit_length() - 1)
