"""Game state machine: dealing, passing, declaring and finishing a game"""

import logging
import random
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .bots import BaseBot, BotAction, GreedyBot
from .constants import (
    CLOCKWISE, PHASE_DEALING, PHASE_FINISHED, PHASE_PLAYING, PHASE_SETUP,
)
from .errors import GameNotInProgress
from .evaluate import find_set_holder, refresh_all
from .models import Card, GameState, Player
from .ranking import assign_ranks, clear_ranks, rank_players
from .rules import RuleConfig, default_rules
from .shuffle import build_deck, deal_cards as deal_round_robin
from .turns import next_seat
from .validate import validate_deal, validate_declare, validate_pass

logger = logging.getLogger(__name__)


def new_game(players: List[Player], category: str, direction: str = CLOCKWISE) -> GameState:
    """A fresh game in setup; seats are renumbered to match list order."""
    for seat, player in enumerate(players):
        player.seat = seat
    return GameState(players=players, category=category, direction=direction)


def _set_deadline(state: GameState, turn_timeout: Optional[float], now: Optional[float]):
    if turn_timeout is None or state.phase != PHASE_PLAYING:
        state.turn_deadline = None
    else:
        state.turn_deadline = (now if now is not None else time.time()) + turn_timeout


def _finish(state: GameState, winner_seat: Optional[int], reason: str):
    state.phase = PHASE_FINISHED
    state.winner_seat = winner_seat
    state.turn_deadline = None
    state.deck = []
    assign_ranks(state)
    winner = state.winner
    if winner:
        state.game_log.append(
            f"{winner.name} wins with {winner.matching_count} matching cards ({reason})"
        )
    else:
        state.game_log.append(f"Game over without a winner ({reason})")


def deal_cards(state: GameState, rng: Optional[random.Random] = None,
               rules: RuleConfig = default_rules, now: Optional[float] = None,
               turn_timeout: Optional[float] = None) -> GameState:
    """
    Build the deck from the chosen items and deal it out.

    setup -> dealing -> playing. When finish_on_deal is set and a hand is
    dealt a complete set, the game goes straight to finished with the first
    such seat as winner.
    """
    validate_deal(state).raise_if_invalid()

    state.phase = PHASE_DEALING
    clear_ranks(state)
    for player in state.players:
        player.hand = []

    state.deck = build_deck(state.players, state.category, rng)
    state.deck = deal_round_robin(state.deck, state.players)
    refresh_all(state.players)

    state.phase = PHASE_PLAYING
    state.direction = rules.direction
    state.current_seat = 0
    state.passed_card = None
    state.winner_seat = None
    state.started_at = now if now is not None else time.time()
    _set_deadline(state, turn_timeout, now)
    state.game_log.append(
        f"Dealt {state.total_cards()} cards; {state.players[0].name} goes first"
    )
    logger.info(f"Dealt {len(state.players)} hands in category '{state.category}'")

    if rules.finish_on_deal:
        holder = find_set_holder(state.players, 0)
        if holder:
            _finish(state, holder.seat, "dealt a set")
    return state


def pass_card(state: GameState, card_id: str, from_seat: int,
              turn_timeout: Optional[float] = None, now: Optional[float] = None) -> GameState:
    """
    Pass a card from the current seat to the next seat in turn direction.

    Every hand is re-evaluated afterwards. If anyone now holds a set the game
    ends; several simultaneous sets go to the first one found in seat order
    starting at the receiving seat. Otherwise the receiver takes the turn.
    Nothing is mutated when validation fails.
    """
    card = validate_pass(state, from_seat, card_id).raise_if_invalid().card

    source = state.players[from_seat]
    to_seat = next_seat(state.direction, from_seat, len(state.players))
    target = state.players[to_seat]

    source.hand = [c for c in source.hand if c.id != card.id]
    card.holder = to_seat
    target.hand.append(card)
    state.passed_card = card
    refresh_all(state.players)
    state.game_log.append(f"{source.name} passed a card to {target.name}")

    holder = find_set_holder(state.players, to_seat)
    if holder:
        _finish(state, holder.seat, "completed a set")
    else:
        state.current_seat = to_seat
        _set_deadline(state, turn_timeout, now)
    return state


def force_pass(state: GameState, rng: Optional[random.Random] = None,
               turn_timeout: Optional[float] = None,
               now: Optional[float] = None) -> Optional[Card]:
    """
    Pass a uniformly random card for the current seat.

    Returns:
        The card that was passed, or None when the hand was empty.
    """
    if state.phase != PHASE_PLAYING:
        raise GameNotInProgress(f"Game is not in playing phase (current: {state.phase})")

    player = state.current_player
    if not player.hand:
        logger.warning(f"Forced pass skipped: {player.name} has no cards")
        return None

    card = (rng or random).choice(player.hand)
    state.game_log.append(f"{player.name} ran out of time")
    pass_card(state, card.id, player.seat, turn_timeout=turn_timeout, now=now)
    return card


def declare_set(state: GameState, seat: int) -> GameState:
    """End the game in favour of ``seat``; allowed on any player's turn."""
    validate_declare(state, seat).raise_if_invalid()
    refresh_all(state.players)
    _finish(state, seat, "declared a set")
    return state


def end_by_timer(state: GameState) -> GameState:
    """Finish a running game by current standings; no-op outside play."""
    if state.phase != PHASE_PLAYING:
        return state
    refresh_all(state.players)
    leader = rank_players(state.players)[0]
    _finish(state, leader.seat, "time ran out")
    return state


def abandon(state: GameState, reason: str) -> GameState:
    """Finish without a winner, e.g. when a player leaves mid-game."""
    if state.phase == PHASE_PLAYING:
        refresh_all(state.players)
        _finish(state, None, reason)
    return state


def reset_game(state: GameState, now: Optional[float] = None) -> GameState:
    """Back to setup with the same players and their item choices."""
    for player in state.players:
        player.hand = []
        player.matching_count = 0
        player.has_set = False
    clear_ranks(state)
    state.phase = PHASE_SETUP
    state.deck = []
    state.current_seat = 0
    state.passed_card = None
    state.winner_seat = None
    state.turn_deadline = None
    state.started_at = now if now is not None else time.time()
    state.game_log = []
    return state


class GameEngine:
    """
    Local single-process game.

    Moves are applied synchronously, one at a time, with no turn deadline.
    Bots act through the same pass_card/declare_set methods a human uses.
    """

    def __init__(self, players: List[Player], category: str,
                 rules: RuleConfig = default_rules,
                 rng: Optional[random.Random] = None,
                 bot_factory: Optional[Callable[[Player], BaseBot]] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.rules = rules
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.state = new_game(players, category, rules.direction)
        bot_factory = bot_factory or (lambda p: GreedyBot(p.id))
        self.bots: Dict[int, BaseBot] = {
            p.seat: bot_factory(p) for p in players if p.is_bot
        }

    @classmethod
    def from_choices(cls, choices: Sequence[Tuple[str, str]], category: str,
                     bot_seats: Sequence[int] = (), **kwargs) -> 'GameEngine':
        """Build players from (name, item) pairs in seat order; ids are "1".."N"."""
        players = [
            Player(id=str(seat + 1), name=name, seat=seat, chosen_item=item,
                   is_bot=seat in bot_seats)
            for seat, (name, item) in enumerate(choices)
        ]
        return cls(players, category, **kwargs)

    @property
    def phase(self) -> str:
        return self.state.phase

    def start(self) -> GameState:
        """Deal after the scripted pause, then let any leading bots play."""
        if self.rules.dealing_delay:
            self.sleep(self.rules.dealing_delay)
        self.deal_cards()
        self.run_bots()
        return self.state

    def deal_cards(self) -> GameState:
        return deal_cards(self.state, self.rng, self.rules)

    def pass_card(self, card_id: str, seat: int) -> GameState:
        return pass_card(self.state, card_id, seat)

    def declare_set(self, seat: int) -> GameState:
        return declare_set(self.state, seat)

    def end_by_timer(self) -> GameState:
        return end_by_timer(self.state)

    def reset_game(self) -> GameState:
        return reset_game(self.state)

    def apply_bot_action(self, seat: int, action: BotAction) -> GameState:
        if action.type == 'declare_set':
            return self.declare_set(seat)
        if action.type == 'pass_card':
            return self.pass_card(action.data['card_id'], seat)
        raise ValueError(f"Unknown bot action: {action.type}")

    def run_bots(self, max_moves: int = 1000) -> int:
        """
        Let bots act until it is a human's turn or the game is over.

        Returns:
            Number of bot actions applied.
        """
        moves = 0
        while self.state.phase == PHASE_PLAYING and moves < max_moves:
            acted = False
            for seat, bot in self.bots.items():
                action = bot.choose_action(self.state)
                if action is None:
                    continue
                self.apply_bot_action(seat, action)
                moves += 1
                acted = True
                break
            if not acted:
                break
        return moves
