# engine_py/src/fourset_engine/ranking.py

from typing import List, Optional

from .models import GameState, Player


def rank_players(players: List[Player], winner_seat: Optional[int] = None) -> List[Player]:
    """
    Order players for the final standings.

    The declared winner comes first, then anyone else holding a set, then
    everybody by descending matching count. Python's sort is stable, so ties
    keep the seat order the list was given in.

    Args:
        players: Players in seat order, with matching_count/has_set up to date.
        winner_seat: Seat of the player the game was awarded to, if any.

    Returns:
        A new list, best player first.
    """
    return sorted(
        players,
        key=lambda p: (p.seat != winner_seat, not p.has_set, -p.matching_count),
    )


def assign_ranks(state: GameState):
    """
    Assigns final ranks to players and records the standings on the state.

    This function mutates the state by setting the 'rank' attribute on each
    player (1 = best) and filling 'rankings' with seats in rank order.

    Args:
        state: The GameState at the moment it finishes.
    """
    ordered = rank_players(state.players, state.winner_seat)
    for position, player in enumerate(ordered):
        player.rank = position + 1
    state.rankings = [p.seat for p in ordered]


def clear_ranks(state: GameState):
    for player in state.players:
        player.rank = None
    state.rankings = []
