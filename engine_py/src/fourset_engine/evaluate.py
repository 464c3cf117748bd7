"""
Set evaluation: how close a hand is to four of a kind.
"""

from typing import Iterable, List, NamedTuple, Optional

from .constants import SET_SIZE
from .models import Card, Player
from .shuffle import get_hand_summary


class HandEvaluation(NamedTuple):
    matching_count: int
    has_set: bool
    best_item: Optional[str]


def evaluate_hand(hand: Iterable[Card]) -> HandEvaluation:
    """Largest same-item group in the hand; pure, no side effects."""
    summary = get_hand_summary(list(hand))
    if not summary:
        return HandEvaluation(0, False, None)

    best_item = max(summary, key=summary.get)
    matching = summary[best_item]
    return HandEvaluation(matching, matching >= SET_SIZE, best_item)


def refresh_player(player: Player) -> HandEvaluation:
    """Recompute a player's derived matching_count/has_set fields."""
    result = evaluate_hand(player.hand)
    player.matching_count = result.matching_count
    player.has_set = result.has_set
    return result


def refresh_all(players: List[Player]) -> None:
    for player in players:
        refresh_player(player)


def find_set_holder(players: List[Player], start_seat: int = 0) -> Optional[Player]:
    """
    First player holding a set, scanning seats upward from start_seat and
    wrapping around.
    """
    count = len(players)
    for offset in range(count):
        player = players[(start_seat + offset) % count]
        if player.has_set:
            return player
    return None
