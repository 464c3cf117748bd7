"""
Shared fixtures for the engine tests.
"""

import random
from collections import Counter
from typing import List, Optional, Sequence

import pytest

from fourset_engine.authority import GameAuthority
from fourset_engine.constants import PHASE_PLAYING
from fourset_engine.evaluate import refresh_all
from fourset_engine.models import Card, GameState, Player
from fourset_engine.rules import create_rules
from fourset_engine.store import StateStore

NAMES = ["Alice", "Bob", "Carol", "Dave", "Erin", "Frank", "Grace", "Heidi"]


class GroupedShuffle(random.Random):
    """'Shuffles' a seat-ordered deck so round-robin dealing hands every seat its own item."""

    def shuffle(self, x):
        n = len(x) // 4
        x[:] = [x[(k % n) * 4 + k // n] for k in range(len(x))]


class KeepOrder(random.Random):
    """Leaves the deck in seat order: round-robin dealing then never hands out a set."""

    def shuffle(self, x):
        pass


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def build_rigged_state(hands: Sequence[Sequence[str]], items: Optional[Sequence[str]] = None,
                       current_seat: int = 0) -> GameState:
    """A game in play with the given hands, card ids numbered per item in seat order."""
    items = items or [hand[0] for hand in hands]
    counters: Counter = Counter()
    players: List[Player] = []
    for seat, hand in enumerate(hands):
        player = Player(id=str(seat + 1), name=NAMES[seat], seat=seat, chosen_item=items[seat])
        for item in hand:
            counters[item] += 1
            player.hand.append(Card(id=f"{item}-{counters[item]}", item=item,
                                    category='mixed', holder=seat))
        players.append(player)
    refresh_all(players)
    return GameState(players=players, phase=PHASE_PLAYING, category='mixed',
                     current_seat=current_seat)


@pytest.fixture
def rigged():
    return build_rigged_state


@pytest.fixture
def blue_state():
    """Seat 0 holds the card that gives seat 1 its fourth Blue."""
    return build_rigged_state(
        [
            ["Blue", "Tiger", "Apple", "Car"],
            ["Blue", "Blue", "Blue", "Tiger"],
            ["Tiger", "Apple", "Apple", "Car"],
            ["Tiger", "Apple", "Car", "Car"],
        ],
        items=["Tiger", "Blue", "Apple", "Car"],
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def rules():
    return create_rules(finish_on_deal=False, turn_timeout=30)


@pytest.fixture
def store():
    return StateStore()


@pytest.fixture
def authority(store, rules, clock, sleeps):
    return GameAuthority(store=store, rules=rules, rng=KeepOrder(7), clock=clock,
                         sleep=sleeps.append)


@pytest.fixture
def lobby(authority):
    """Host plus one guest, both seated, guest ready; returns (code, host_id, guest_id)."""
    result = authority.create_room("host", "Alice")
    code = result.room.code
    authority.join_room(code, "guest", "Bob")
    authority.set_ready(code, "guest")
    return code, "host", "guest"


@pytest.fixture
def playing_room(authority, lobby):
    """Two-player room dealt and in play."""
    code, host, guest = lobby
    authority.start_game(code, host, "colors")
    authority.select_item(code, host, "Red")
    authority.select_item(code, guest, "Blue")
    result = authority.deal_cards(code, host)
    assert result.success, result
    return code, host, guest


@pytest.fixture
def grouped_rng():
    return GroupedShuffle(1)


@pytest.fixture
def ordered_rng():
    return KeepOrder(1)
