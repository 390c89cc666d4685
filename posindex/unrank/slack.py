from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple


PAWNS_PER_SIDE = 8
MEN_PER_SIDE_LESS_KING = 15


@dataclass(frozen=True)
class Slack:
    """Promotion budget per side.

    Attributes:
        pawn_slack: Pawns of each side that may still have promoted.
        chessmen_slack: Opposing men each side may still have captured on
            the way to a promotion.
    """

    pawn_slack: Tuple[int, int]
    chessmen_slack: Tuple[int, int]


PromotionSlackFn = Callable[[Sequence[int], Sequence[int], Sequence[int]], Slack]


def promotion_slack(
    num_pawns: Sequence[int],
    base_capturable: Sequence[int],
    promotions: Sequence[int],
) -> Slack:
    """Default promotion budget.

    A side has ``8 - pawns - promotions`` pawns left that could have promoted.
    Every promotion is paid for with one capture of an opposing man, so the
    capture budget is what the opponent is missing minus the promotions both
    sides already spent.
    """
    pawn_slack = tuple(
        max(0, PAWNS_PER_SIDE - num_pawns[s] - promotions[s]) for s in (0, 1)
    )
    chessmen_slack = []
    for s in (0, 1):
        opp = 1 - s
        missing = MEN_PER_SIDE_LESS_KING - num_pawns[opp] - base_capturable[opp] - promotions[opp]
        chessmen_slack.append(max(0, missing - promotions[s]))
    return Slack(
        pawn_slack=(pawn_slack[0], pawn_slack[1]),
        chessmen_slack=(chessmen_slack[0], chessmen_slack[1]),
    )
