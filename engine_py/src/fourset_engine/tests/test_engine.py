"""
Game state machine tests: dealing, passing, declaring, finishing and reset.
"""

import copy
import random

import pytest

from fourset_engine import engine
from fourset_engine.constants import (
    COUNTERCLOCKWISE, PHASE_FINISHED, PHASE_PLAYING, PHASE_SETUP,
)
from fourset_engine.engine import GameEngine
from fourset_engine.errors import (
    CardNotHeld, GameNotInProgress, InvalidSetup, NoValidSet, NotYourTurn,
    PlayerNotFound,
)
from fourset_engine.rules import create_rules
from fourset_engine.shuffle import validate_deck_integrity

FOUR = [("Alice", "Tiger"), ("Bob", "Blue"), ("Carol", "Apple"), ("Dave", "Car")]
NO_PAUSE = create_rules(dealing_delay=0)


def test_deal_moves_to_playing(ordered_rng):
    game = GameEngine.from_choices(FOUR, "mixed", rng=ordered_rng, rules=NO_PAUSE)
    state = game.deal_cards()

    assert state.phase == PHASE_PLAYING
    assert state.current_seat == 0
    assert state.deck == []
    assert state.total_cards() == 16
    for player in state.players:
        assert player.hand_count == 4
    assert state.turn_deadline is None
    assert validate_deck_integrity(state)


def test_deal_twice_fails(ordered_rng):
    game = GameEngine.from_choices(FOUR, "mixed", rng=ordered_rng)
    game.deal_cards()
    with pytest.raises(GameNotInProgress):
        game.deal_cards()


def test_deal_rejects_duplicate_choices():
    game = GameEngine.from_choices([("Alice", "Red"), ("Bob", "Red")], "colors")
    with pytest.raises(InvalidSetup):
        game.deal_cards()
    assert game.phase == PHASE_SETUP


def test_deal_needs_two_players():
    game = GameEngine.from_choices([("Alice", "Red")], "colors")
    with pytest.raises(InvalidSetup):
        game.deal_cards()


def test_dealt_set_finishes_immediately(grouped_rng):
    """Every seat is dealt its own four cards; seat 0 is found first."""
    game = GameEngine.from_choices(FOUR, "mixed", rng=grouped_rng, rules=NO_PAUSE)
    state = game.deal_cards()

    assert state.phase == PHASE_FINISHED
    assert state.winner_seat == 0
    assert state.players[0].rank == 1
    assert state.rankings[0] == 0
    assert state.deck == []


def test_dealt_set_waits_for_declare_when_configured(grouped_rng):
    rules = create_rules(dealing_delay=0, finish_on_deal=False)
    game = GameEngine.from_choices(FOUR, "mixed", rng=grouped_rng, rules=rules)
    state = game.deal_cards()

    assert state.phase == PHASE_PLAYING
    assert all(p.has_set for p in state.players)

    game.declare_set(2)
    assert state.phase == PHASE_FINISHED
    assert state.winner_seat == 2
    assert state.players[2].rank == 1


def test_pass_completing_set_wins(blue_state):
    """Seat 0 hands seat 1 its fourth Blue."""
    state = engine.pass_card(blue_state, "Blue-1", 0)

    assert state.phase == PHASE_FINISHED
    assert state.winner_seat == 1
    assert state.winner.name == "Bob"
    assert state.players[1].rank == 1
    assert state.players[1].hand_count == 5
    assert state.players[1].has_set
    assert state.passed_card.id == "Blue-1"
    assert state.passed_card.holder == 1


def test_pass_advances_turn(blue_state):
    state = engine.pass_card(blue_state, "Tiger-1", 0)

    assert state.phase == PHASE_PLAYING
    assert state.current_seat == 1
    assert state.players[0].hand_count == 3
    assert state.players[1].hand_count == 5
    assert state.players[1].find_card("Tiger-1").holder == 1


def test_pass_sets_deadline_when_timed(blue_state):
    engine.pass_card(blue_state, "Tiger-1", 0, turn_timeout=30, now=100.0)
    assert blue_state.turn_deadline == 130.0


def test_pass_preserves_cards(blue_state):
    before = sorted(blue_state.all_card_ids())
    engine.pass_card(blue_state, "Apple-1", 0)

    after = blue_state.all_card_ids()
    assert sorted(after) == before
    assert len(after) == len(set(after)) == 16


def test_counterclockwise_pass_goes_to_last_seat(blue_state):
    blue_state.direction = COUNTERCLOCKWISE
    engine.pass_card(blue_state, "Tiger-1", 0)

    assert blue_state.current_seat == 3
    assert blue_state.players[3].hand_count == 5


def test_out_of_turn_pass_changes_nothing(blue_state):
    snapshot = copy.deepcopy(blue_state)

    with pytest.raises(NotYourTurn):
        engine.pass_card(blue_state, "Blue-2", 1)

    assert blue_state == snapshot


def test_pass_card_not_held(blue_state):
    snapshot = copy.deepcopy(blue_state)

    with pytest.raises(CardNotHeld):
        engine.pass_card(blue_state, "Blue-2", 0)

    assert blue_state == snapshot


def test_pass_from_empty_seat(blue_state):
    with pytest.raises(PlayerNotFound):
        engine.pass_card(blue_state, "Blue-1", 7)


def test_pass_after_finish_rejected(blue_state):
    engine.pass_card(blue_state, "Blue-1", 0)
    with pytest.raises(GameNotInProgress):
        engine.pass_card(blue_state, "Tiger-1", 1)


def test_existing_set_elsewhere_ends_game(rigged):
    """A set anywhere at the table ends the game after the next pass."""
    state = rigged([
        ["Tiger", "Blue", "Apple", "Apple"],
        ["Tiger", "Blue", "Blue", "Apple"],
        ["Tiger", "Blue", "Tiger", "Apple"],
        ["Car", "Car", "Car", "Car"],
    ])
    engine.pass_card(state, "Apple-1", 0)

    assert state.phase == PHASE_FINISHED
    assert state.winner_seat == 3


def test_simultaneous_sets_favor_receiver(rigged):
    state = rigged([
        ["Blue", "Tiger", "Apple", "Apple"],
        ["Blue", "Blue", "Blue", "Tiger"],
        ["Tiger", "Tiger", "Apple", "Apple"],
        ["Car", "Car", "Car", "Car"],
    ], items=["Tiger", "Blue", "Apple", "Car"])
    engine.pass_card(state, "Blue-1", 0)

    assert state.winner_seat == 1
    assert state.rankings[:2] == [1, 3]
    assert state.players[3].rank == 2


def test_declare_without_set(blue_state):
    """Seat 1 has only three Blues."""
    with pytest.raises(NoValidSet):
        engine.declare_set(blue_state, 1)
    assert blue_state.phase == PHASE_PLAYING
    assert blue_state.winner_seat is None


def test_declare_out_of_turn_allowed(rigged):
    state = rigged([
        ["Red", "Blue", "Blue", "Green"],
        ["Red", "Red", "Red", "Red"],
        ["Green", "Green", "Green", "Blue"],
    ], items=["Blue", "Red", "Green"])
    engine.declare_set(state, 1)

    assert state.phase == PHASE_FINISHED
    assert state.winner_seat == 1
    assert state.current_seat == 0


def test_force_pass_moves_random_card(blue_state):
    card = engine.force_pass(blue_state, random.Random(5), turn_timeout=30, now=50.0)

    assert card is not None
    assert card.holder == 1
    assert blue_state.players[0].find_card(card.id) is None
    assert blue_state.players[1].find_card(card.id) is not None
    if blue_state.phase == PHASE_PLAYING:
        assert blue_state.current_seat == 1
        assert blue_state.turn_deadline == 80.0


def test_force_pass_empty_hand_is_noop(blue_state):
    blue_state.players[0].hand = []
    snapshot = copy.deepcopy(blue_state)

    assert engine.force_pass(blue_state, random.Random(1)) is None
    assert blue_state == snapshot


def test_force_pass_outside_play(blue_state):
    blue_state.phase = PHASE_FINISHED
    with pytest.raises(GameNotInProgress):
        engine.force_pass(blue_state, random.Random(1))


def test_end_by_timer_ranks_by_matching(blue_state):
    engine.end_by_timer(blue_state)

    assert blue_state.phase == PHASE_FINISHED
    assert blue_state.winner_seat == 1
    assert blue_state.rankings[0] == 1
    # Bob 3 matching, Carol and Dave 2 (seat order), Alice 1
    assert [p.rank for p in blue_state.players] == [4, 1, 2, 3]


def test_end_by_timer_outside_play_is_noop(blue_state):
    blue_state.phase = PHASE_SETUP
    engine.end_by_timer(blue_state)
    assert blue_state.phase == PHASE_SETUP
    assert blue_state.winner_seat is None


def test_reset_after_finish(blue_state):
    engine.pass_card(blue_state, "Blue-1", 0)
    engine.reset_game(blue_state, now=10.0)

    assert blue_state.phase == PHASE_SETUP
    assert blue_state.deck == []
    assert blue_state.winner_seat is None
    assert blue_state.rankings == []
    assert blue_state.passed_card is None
    assert blue_state.turn_deadline is None
    for player in blue_state.players:
        assert player.hand == []
        assert player.rank is None
        assert not player.has_set
    assert [p.chosen_item for p in blue_state.players] == ["Tiger", "Blue", "Apple", "Car"]


def test_reset_then_deal_again(ordered_rng):
    game = GameEngine.from_choices(FOUR, "mixed", rng=ordered_rng, rules=NO_PAUSE)
    game.deal_cards()
    game.end_by_timer()
    game.reset_game()

    state = game.deal_cards()
    assert state.phase == PHASE_PLAYING
    assert state.total_cards() == 16


def test_start_pauses_then_deals(ordered_rng):
    pauses = []
    rules = create_rules(dealing_delay=1.5)
    game = GameEngine.from_choices(FOUR, "mixed", rng=ordered_rng, rules=rules,
                                   sleep=pauses.append)
    state = game.start()

    assert pauses == [1.5]
    assert state.phase == PHASE_PLAYING


def test_game_log_records_moves(blue_state):
    engine.pass_card(blue_state, "Blue-1", 0)
    assert blue_state.game_log[0] == "Alice passed a card to Bob"
    assert "Bob wins" in blue_state.game_log[-1]
