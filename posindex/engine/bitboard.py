from __future__ import annotations

from typing import Iterator


BOARD_SIDE = 8
NUM_SQUARES = 64
MASK64 = 0xFFFFFFFFFFFFFFFF

RANK_1 = 0x00000000000000FF
RANK_8 = 0xFF00000000000000
# Pawns never stand on either home rank
EDGE_RANKS = RANK_1 | RANK_8


def square(rank: int, file: int) -> int:
    return rank * BOARD_SIDE + file


def bit(sq: int) -> int:
    return 1 << sq


def popcount(bb: int) -> int:
    return bin(bb & MASK64).count("1")


def iter_squares(bb: int) -> Iterator[int]:
    """Yield set squares of ``bb`` from a1 upward."""
    while bb:
        lsb = bb & -bb
        yield lsb.bit_length() - 1
        bb ^= lsb


def deposit(pattern: int, mask: int) -> int:
    """Scatter the low bits of ``pattern`` into the set bits of ``mask``.

    The i-th bit of ``pattern`` lands on the i-th set bit of ``mask``
    (counted from the least significant end). Bits of ``pattern`` beyond
    ``popcount(mask)`` are dropped.
    """
    out = 0
    mask &= MASK64
    i = 0
    while mask and pattern >> i:
        lsb = mask & -mask
        if (pattern >> i) & 1:
            out |= lsb
        mask ^= lsb
        i += 1
    return out


def flip_vertical(bb: int) -> int:
    """Mirror a bitboard across the central ranks (a1 <-> a8)."""
    return int.from_bytes((bb & MASK64).to_bytes(8, "little"), "big")


def square_to_str(idx: int) -> str:
    """Convert a 0-based square index into algebraic notation.

    Raises:
        ValueError: If ``idx`` is outside the valid square range.
    """
    if idx < 0 or idx > 63:
        raise ValueError(f"invalid square index: {idx}")
    return chr(ord("a") + idx % 8) + str(idx // 8 + 1)


def str_to_square(s: str) -> int:
    if len(s) != 2 or s[0] < "a" or s[0] > "h" or s[1] < "1" or s[1] > "8":
        raise ValueError(f"invalid square: {s!r}")
    return (int(s[1]) - 1) * 8 + ord(s[0]) - ord("a")
