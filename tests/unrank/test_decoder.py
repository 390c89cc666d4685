from __future__ import annotations

import pytest

from posindex.engine.bitboard import str_to_square
from posindex.engine.position import BISHOP, KING, KNIGHT, QUEEN, ROOK
from posindex.unrank.decoder import Decoder
from posindex.unrank.errors import (
    CALLER_ERROR,
    IndexOutOfRangeError,
    PreconditionViolation,
)
from posindex.unrank.tree import DecisionTree, TreeBuilder


def bb(*names: str) -> int:
    out = 0
    for n in names:
        out |= 1 << str_to_square(n)
    return out


def minimal_tree(size: int = 10**6) -> DecisionTree:
    # root -> single en-passant-class leaf "None" holding every configuration
    return DecisionTree.from_nested([size])


def test_decode_zero_on_minimal_tree(identity_tables) -> None:
    decoder = Decoder(minimal_tree(), identity_tables)
    p = decoder.decode(0)
    assert not p.side0_is_black
    assert not p.side0_to_move
    assert p.en_passant == 0
    assert p.sides[0].pawns == 0 and p.sides[1].pawns == 0
    assert p.sides[0].pieces == (0, 0, 0, 0, bb("a1"))
    assert p.sides[1].pieces == (0, 0, 0, 0, bb("b1"))
    assert p.fixed_rooks == 0
    assert p.to_fen() == "8/8/8/8/8/8/8/Kk6 b - - 0 1"


def test_color_bit_and_king_placement(identity_tables) -> None:
    decoder = Decoder(minimal_tree(), identity_tables)
    # 3 -> colour bit 1, then king rank 1 (b1) and king rank 0 (a1)
    p = decoder.decode(3)
    assert p.side0_is_black
    assert p.sides[0].pieces[KING] == bb("b1")
    assert p.sides[1].pieces[KING] == bb("a1")
    assert p.to_fen() == "Kk6/8/8/8/8/8/8/8 w - - 0 1"


def test_edge_and_right_en_passant(identity_tables) -> None:
    tree = DecisionTree.from_nested([1, 10**6])
    decoder = Decoder(tree, identity_tables)
    # colour 0, skip the "None" leaf, remainder 3 -> pawn on d4, capturer on e4
    p = decoder.decode(2 * (1 + 3))
    assert p.en_passant == bb("d4")
    assert p.sides[0].pawns == bb("d4")
    assert p.sides[1].pawns == bb("e4")
    assert p.sides[0].pieces[KING] == bb("a1")
    assert p.sides[1].pieces[KING] == bb("b1")
    assert p.to_fen() == "8/8/8/8/3Pp3/8/8/Kk6 b - d3 0 1"


def test_edge_and_right_boundary_uses_edge_file(identity_tables) -> None:
    tree = DecisionTree.from_nested([1, 10**6])
    decoder = Decoder(tree, identity_tables)
    # Remainder 7 is the last variation: pawn on the h-file, capturer on g
    p = decoder.decode(2 * (1 + 7))
    assert p.en_passant == bb("h4")
    assert p.sides[1].pawns == bb("g4")
    assert p.to_fen() == "8/8/8/8/6pP/8/8/Kk6 b - h3 0 1"


def test_left_less_edge_shadow_blocks_capturer_side_only(identity_tables) -> None:
    b = TreeBuilder()
    side1_pawns = b.node([b.leaf(1), b.leaf(1000)])
    root = b.node([b.leaf(1), b.leaf(1), side1_pawns])
    decoder = Decoder(b.build(root), identity_tables)

    # EP remainder 2 -> pawn d4, capturer c4, e4 shadowed for side 1's pawns.
    # One more side-1 pawn at free rank 16, which would be e4 without the
    # shadow and is f4 with it.
    after_ep = 1 + 16
    index = 2 * (2 + after_ep * 6 + 2)
    assert index == 212
    p = decoder.decode(index)
    assert p.en_passant == bb("d4")
    assert p.sides[0].pawns == bb("d4")
    assert p.sides[1].pawns == bb("c4", "f4")
    assert p.to_fen() == "8/8/8/8/2pP1p2/8/8/Kk6 b - d3 0 1"


def fixed_rook_tree() -> DecisionTree:
    b = TreeBuilder()
    tail = b.leaf(10**6)
    s1_slot0 = b.node([tail])
    s0_slot2 = b.node([s1_slot0])
    s0_slot1 = b.node([b.leaf(1), s0_slot2])
    s0_slot0 = b.node([b.leaf(1), s0_slot1])
    fr1 = b.node([b.leaf(1), s0_slot0])
    fr0 = b.node([b.leaf(1), b.leaf(1), fr1])
    pawns0 = b.node([fr0])
    pawns1 = b.node([pawns0])
    root = b.node([pawns1])
    return b.build(root)


def test_fixed_rooks_pieces_and_permutation(make_tables) -> None:
    perms = [(0, 1, 2, 3), (1, 0, 2, 3), (0, 1, 3, 2), (2, 0, 3, 1), (3, 2, 1, 0), (1, 0, 3, 2)]
    tables = make_tables(
        cost_boundaries={(2, 36): (8, 24), (1, 0): (24,)},
        permutations={(2, 36, 4): tuple(perms)},
    )
    decoder = Decoder(fixed_rook_tree(), tables)
    p = decoder.decode(82620)

    s0, s1 = p.sides
    assert s0.fixed_rooks == bb("a1", "h1")
    assert s1.fixed_rooks == bb("h8")
    assert p.fixed_rooks == bb("a1", "h1", "h8")
    assert p.side0_to_move
    # Slot 0 (b1) became the bishop, slot 1 (c1) the queen, then the
    # two-fixed-rook scenario swaps queen and rook
    assert s0.pieces[KNIGHT] == 0
    assert s0.pieces[BISHOP] == bb("b1")
    assert s0.pieces[ROOK] == bb("a1", "c1", "h1")
    assert s0.pieces[QUEEN] == 0
    assert s0.pieces[KING] == bb("e1")
    assert s1.pieces == (0, 0, bb("h8"), 0, bb("e8"))
    assert p.to_fen() == "4k2r/8/8/8/8/8/8/RBR1K2R w KQk - 0 1"


def test_claims_are_pairwise_disjoint(make_tables) -> None:
    tables = make_tables(
        cost_boundaries={(2, 36): (8, 24)},
        permutations={(2, 36, 4): ((0, 1, 2, 3),) * 6},
    )
    decoder = Decoder(fixed_rook_tree(), tables)
    state = decoder.run(82620)
    claims = [squares for _, squares in state.claims]
    assert len(claims) >= 4
    for i, a in enumerate(claims):
        for b in claims[i + 1 :]:
            assert a & b == 0
    union = 0
    for squares in claims:
        union |= squares
    assert union == state.occupied
    assert state.index == 0


@pytest.mark.parametrize("bad", [-1, 10**6, 10**30])
def test_out_of_range_index_is_caller_error(identity_tables, bad) -> None:
    decoder = Decoder(minimal_tree(), identity_tables)
    with pytest.raises(IndexOutOfRangeError) as exc:
        decoder.decode(bad)
    assert exc.value.kind == CALLER_ERROR
    assert isinstance(exc.value, PreconditionViolation)
    assert isinstance(exc.value, ValueError)


@pytest.mark.parametrize("bad", [True, 1.0, "5", None])
def test_non_integer_index_rejected(identity_tables, bad) -> None:
    decoder = Decoder(minimal_tree(), identity_tables)
    with pytest.raises(IndexOutOfRangeError):
        decoder.decode(bad)  # type: ignore[arg-type]


def test_decode_many_isolates_failures(identity_tables) -> None:
    decoder = Decoder(minimal_tree(), identity_tables)
    outcomes = decoder.decode_many([0, -5, 3, 10**7])
    assert [o.ok for o in outcomes] == [True, False, True, False]
    assert outcomes[0].position is not None
    assert outcomes[1].error is not None and outcomes[1].error.code == "index_out_of_range"
    assert outcomes[2].position is not None and outcomes[2].position.side0_is_black


def test_missing_permutation_table_is_internal_error() -> None:
    from posindex.unrank.errors import INTERNAL_ERROR, PermutationUnresolved
    from posindex.unrank.tables import DecodeTables

    decoder = Decoder(minimal_tree(), DecodeTables(cost_boundaries={}, permutations={}))
    with pytest.raises(PermutationUnresolved) as exc:
        decoder.decode(0)
    assert exc.value.kind == INTERNAL_ERROR


def test_total_is_root_size(identity_tables) -> None:
    assert Decoder(minimal_tree(12345), identity_tables).total == 12345


def test_covered_set_classifier_selects_table_keys() -> None:
    from posindex.unrank.classification import AAAA
    from posindex.unrank.errors import PermutationUnresolved
    from posindex.unrank.tables import DecodeTables

    # Only covered-set id 7 has entries; no piece counts at all map to it
    costs = {(0, 7): (24,)}
    perms = {(0, 7, AAAA): ((0, 1, 2, 3),)}
    tables = DecodeTables(
        cost_boundaries=costs, permutations=perms, covered_sets={(0, 0, 0, 0): 7}
    )
    p = Decoder(minimal_tree(), tables).decode(0)
    assert p.to_fen() == "8/8/8/8/8/8/8/Kk6 b - - 0 1"

    base_three = DecodeTables(cost_boundaries=costs, permutations=perms)
    with pytest.raises(PermutationUnresolved):
        Decoder(minimal_tree(), base_three).decode(0)
