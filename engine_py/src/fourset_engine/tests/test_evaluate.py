"""
Tests for set evaluation and turn order.
"""

import pytest

from fourset_engine.constants import CLOCKWISE, COUNTERCLOCKWISE
from fourset_engine.evaluate import evaluate_hand, find_set_holder, refresh_player
from fourset_engine.models import Card, Player
from fourset_engine.turns import next_seat, turn_order


def hand(*items):
    return [Card(id=f"{item}-{i}", item=item, category="mixed") for i, item in enumerate(items)]


def test_empty_hand():
    result = evaluate_hand([])
    assert result.matching_count == 0
    assert not result.has_set
    assert result.best_item is None


def test_largest_group_counts():
    result = evaluate_hand(hand("Red", "Blue", "Red", "Green"))
    assert result.matching_count == 2
    assert result.best_item == "Red"
    assert not result.has_set


def test_four_of_a_kind_is_a_set():
    result = evaluate_hand(hand("Red", "Red", "Red", "Red"))
    assert result.matching_count == 4
    assert result.has_set


def test_set_in_five_card_hand():
    """A receiver briefly holds five cards; four matching still counts."""
    result = evaluate_hand(hand("Blue", "Blue", "Tiger", "Blue", "Blue"))
    assert result.has_set
    assert result.best_item == "Blue"


def test_evaluation_is_pure():
    cards = hand("Red", "Red", "Red", "Blue")
    first = evaluate_hand(cards)
    second = evaluate_hand(cards)
    assert first == second
    assert [c.item for c in cards] == ["Red", "Red", "Red", "Blue"]


def test_refresh_player_updates_derived_fields():
    player = Player(id="1", name="A", seat=0, hand=hand("Red", "Red", "Red", "Red"))
    refresh_player(player)
    assert player.matching_count == 4
    assert player.has_set

    player.hand.pop()
    refresh_player(player)
    assert player.matching_count == 3
    assert not player.has_set


def test_find_set_holder_wraps_from_start_seat():
    players = [Player(id=str(i), name=str(i), seat=i) for i in range(4)]
    players[0].has_set = True
    players[2].has_set = True

    assert find_set_holder(players, 0).seat == 0
    assert find_set_holder(players, 1).seat == 2
    assert find_set_holder(players, 3).seat == 0

    for p in players:
        p.has_set = False
    assert find_set_holder(players, 1) is None


def test_clockwise_order():
    order = turn_order(CLOCKWISE, 0, 4)
    assert [next(order) for _ in range(5)] == [0, 1, 2, 3, 0]


def test_counterclockwise_order():
    order = turn_order(COUNTERCLOCKWISE, 0, 4)
    assert [next(order) for _ in range(5)] == [0, 3, 2, 1, 0]


def test_next_seat_never_skips():
    for count in range(2, 9):
        seen = set()
        seat = 0
        for _ in range(count):
            seen.add(seat)
            seat = next_seat(CLOCKWISE, seat, count)
        assert seen == set(range(count))
        assert seat == 0


def test_next_seat_rejects_bad_input():
    with pytest.raises(ValueError):
        next_seat("sideways", 0, 4)
    with pytest.raises(ValueError):
        next_seat(CLOCKWISE, 0, 0)
