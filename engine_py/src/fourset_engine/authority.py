"""
Synchronization authority for networked rooms.

All mutations of a room go through ``GameAuthority``. Each operation reads a
versioned snapshot of the room from the store, validates and mutates the
copy, then writes it back with a compare-and-set on the version it read. A
concurrent commit in between makes the write fail with StaleWrite; the
operation then re-reads and re-validates against the newer state, backing
off exponentially, so two actors can never both succeed against the same
stale precondition. Observable order equals commit order.

The store publishes every committed room to subscribers; there is no other
way for state to leave the authority.
"""

import logging
import random
import time
import uuid
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from . import engine
from .catalog import free_items, get_category
from .constants import (
    BOT_NAMES, EVENT_CARD_PASSED, EVENT_CARDS_DEALT, EVENT_GAME_ENDED,
    EVENT_GAME_STARTED, EVENT_PLAYER_JOINED, EVENT_PLAYER_LEFT, EVENT_SET_CALLED,
    PHASE_FINISHED, PHASE_PLAYING, ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH,
    ROOM_FINISHED, ROOM_KEY_PREFIX, ROOM_PLAYING, ROOM_SELECTING, ROOM_WAITING,
    room_key,
)
from .errors import (
    AlreadyInRoom, GameError, GameNotInProgress, InvalidSetup, NotHost,
    NotYourTurn, PlayerNotFound, RoomFull, RoomNotFound, StaleWrite,
)
from .models import Player, Room
from .ranking import assign_ranks
from .rules import RuleConfig, default_rules
from .store import Record, StateStore

logger = logging.getLogger(__name__)

# Returned by a mutation that decided nothing needs to be written
NO_CHANGE = object()


class ActionResult:
    """Outcome of an authority operation, reported to the caller only."""

    def __init__(self, success: bool, room: Optional[Room] = None,
                 error_code: Optional[str] = None, error_message: Optional[str] = None,
                 data: Optional[Dict[str, Any]] = None):
        self.success = success
        self.room = room
        self.error_code = error_code
        self.error_message = error_message
        self.data = data or {}

    @property
    def state(self) -> Optional[Room]:
        return self.room

    @classmethod
    def ok(cls, room: Optional[Room], **data) -> 'ActionResult':
        return cls(True, room=room, data=data)

    @classmethod
    def fail(cls, error: GameError) -> 'ActionResult':
        return cls(False, error_code=error.code, error_message=error.message)

    def __repr__(self) -> str:
        if self.success:
            return f"ActionResult(success=True, data={self.data!r})"
        return f"ActionResult(success=False, error_code={self.error_code!r})"


class ExpiredTurn(NamedTuple):
    code: str
    seat: int
    deadline: float


class GameAuthority:
    def __init__(self, store: Optional[StateStore] = None,
                 rules: RuleConfig = default_rules,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store or StateStore()
        self.rules = rules
        self.rng = rng or random.Random()
        self.clock = clock
        self.sleep = sleep

    # ------------------------------------------------------------------
    # Reads and subscriptions

    def get_room(self, code: str) -> Optional[Room]:
        record = self.store.read(room_key(code))
        if record is None:
            return None
        room = record.value
        room.version = record.version
        return room

    def room_codes(self) -> List[str]:
        return [key[len(ROOM_KEY_PREFIX):] for key in self.store.keys(ROOM_KEY_PREFIX)]

    def subscribe(self, callback: Callable[[str, Optional[Room]], None]) -> Callable[[], None]:
        """
        Receive every committed room as a full snapshot: callback(code, room).
        ``room`` is None when the room was closed.
        """
        def on_record(record: Record):
            if not record.key.startswith(ROOM_KEY_PREFIX):
                return
            code = record.key[len(ROOM_KEY_PREFIX):]
            callback(code, None if record.deleted else record.value)

        return self.store.subscribe(on_record)

    def expired_turns(self, now: Optional[float] = None) -> List[ExpiredTurn]:
        """Rooms whose current player has run out of time."""
        now = self.clock() if now is None else now
        expired = []
        for code in self.room_codes():
            room = self.get_room(code)
            if room is None:
                continue
            game = room.game
            if game.phase == PHASE_PLAYING and game.turn_deadline is not None \
                    and now >= game.turn_deadline:
                expired.append(ExpiredTurn(code, game.current_seat, game.turn_deadline))
        return expired

    # ------------------------------------------------------------------
    # Commit machinery

    def _transact(self, code: str, mutate: Callable[[Room], Any]) -> Optional[Room]:
        key = room_key(code)
        attempts = self.rules.max_commit_attempts
        for attempt in range(attempts):
            record = self.store.read(key)
            if record is None:
                raise RoomNotFound(f"No room with code {code.upper()}")
            room = record.value
            room.version = record.version

            if mutate(room) is NO_CHANGE:
                return room

            try:
                if not room.players:
                    self.store.delete(key, expected_version=record.version)
                    logger.info(f"Room {room.code} closed")
                    return None
                room.version = record.version + 1
                self.store.write(key, room, expected_version=record.version)
                return room
            except StaleWrite as e:
                logger.info(f"Write conflict on room {code} (attempt {attempt + 1}/{attempts}): {e.message}")
                if attempt + 1 < attempts:
                    self.sleep(self.rules.backoff_delay(attempt))

        raise StaleWrite(f"Room {code.upper()} kept changing; gave up after {attempts} attempts")

    def _run(self, action: str, code: str, mutate: Callable[[Room], Any]) -> ActionResult:
        try:
            room = self._transact(code, mutate)
        except GameError as e:
            logger.info(f"{action} rejected in room {code}: {e}")
            return ActionResult.fail(e)
        return ActionResult.ok(room)

    # ------------------------------------------------------------------
    # Lobby

    def _new_code(self) -> str:
        return ''.join(self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))

    def create_room(self, host_id: str, host_name: str,
                    max_players: Optional[int] = None) -> ActionResult:
        """Open a room with a fresh code; the host takes seat 0."""
        max_players = max_players or self.rules.max_players
        if not self.rules.validate_player_count(max_players):
            return ActionResult.fail(InvalidSetup(
                f"Rooms hold {self.rules.min_players}-{self.rules.max_players} players"
            ))

        for _ in range(100):
            code = self._new_code()
            room = Room(id=str(uuid.uuid4()), code=code, host_id=host_id,
                        max_players=max_players, version=1, created_at=self.clock())
            room.players.append(Player(id=host_id, name=host_name, seat=0))
            room.log_event(EVENT_PLAYER_JOINED, player_id=host_id, username=host_name, seat=0)
            try:
                record = self.store.create(room_key(code), room)
            except StaleWrite:
                continue
            room.version = record.version
            logger.info(f"Room {code} created by {host_name}")
            return ActionResult.ok(room)

        return ActionResult.fail(StaleWrite("Could not find a free room code"))

    def join_room(self, code: str, user_id: str, name: str,
                  is_bot: bool = False) -> ActionResult:
        def mutate(room: Room):
            if room.find_player(user_id):
                raise AlreadyInRoom(f"{name} is already in room {room.code}")
            if room.status != ROOM_WAITING:
                raise InvalidSetup(f"Room {room.code} has already started")
            if len(room.players) >= room.max_players:
                raise RoomFull(f"Room {room.code} is full ({room.max_players} players)")

            seat = len(room.players)
            room.players.append(Player(id=user_id, name=name, seat=seat,
                                       is_bot=is_bot, is_ready=is_bot))
            room.log_event(EVENT_PLAYER_JOINED, player_id=user_id, username=name, seat=seat)

        try:
            room = self._transact(code, mutate)
        except AlreadyInRoom:
            return ActionResult.ok(self.get_room(code), already_in_room=True)
        except GameError as e:
            logger.info(f"join rejected in room {code}: {e}")
            return ActionResult.fail(e)
        return ActionResult.ok(room)

    def add_bot(self, code: str, user_id: str) -> ActionResult:
        """Host fills an empty seat with a computer player."""
        if not self.rules.enable_bots:
            return ActionResult.fail(InvalidSetup("Bots are disabled"))
        room = self.get_room(code)
        if room is None:
            return ActionResult.fail(RoomNotFound(f"No room with code {code.upper()}"))
        if room.host_id != user_id:
            return ActionResult.fail(NotHost("Only the host can add bots"))

        bot_count = sum(1 for p in room.players if p.is_bot)
        name = f"{BOT_NAMES[bot_count % len(BOT_NAMES)]} (bot)"
        return self.join_room(code, f"bot-{uuid.uuid4().hex[:8]}", name, is_bot=True)

    def leave_room(self, code: str, user_id: str) -> ActionResult:
        """
        Remove a player. Leaving mid-game ends the game without a winner;
        cards already passed stay where they are.
        """
        def mutate(room: Room):
            player = self._require_player(room, user_id)
            game = room.game

            if game.phase == PHASE_PLAYING:
                engine.abandon(game, f"{player.name} left")
                room.status = ROOM_FINISHED
                room.log_event(EVENT_GAME_ENDED, winner_id=None, reason='player_left')

            winner = game.winner
            room.players.remove(player)
            for seat, p in enumerate(room.players):
                p.seat = seat
                for card in p.hand:
                    card.holder = seat
            if game.phase == PHASE_FINISHED:
                game.winner_seat = winner.seat if winner is not None and winner is not player else None
                assign_ranks(game)
            game.current_seat = 0

            if room.host_id == user_id and room.players:
                room.host_id = room.players[0].id
            room.log_event(EVENT_PLAYER_LEFT, player_id=user_id, username=player.name)

        return self._run("leave", code, mutate)

    def set_ready(self, code: str, user_id: str, ready: bool = True) -> ActionResult:
        def mutate(room: Room):
            player = self._require_player(room, user_id)
            if room.status not in (ROOM_WAITING, ROOM_SELECTING):
                raise InvalidSetup("Ready state can only change before the deal")
            if player.is_ready == ready:
                return NO_CHANGE
            player.is_ready = ready

        return self._run("ready", code, mutate)

    def set_connected(self, code: str, user_id: str, connected: bool) -> ActionResult:
        """Track whether a player's socket is attached; the seat is kept either way."""
        def mutate(room: Room):
            player = self._require_player(room, user_id)
            if player.connected == connected:
                return NO_CHANGE
            player.connected = connected

        return self._run("connection", code, mutate)

    def start_game(self, code: str, user_id: str, category: str) -> ActionResult:
        """Host picks the category; players then choose their items."""
        def mutate(room: Room):
            self._require_host(room, user_id)
            if room.status != ROOM_WAITING:
                raise InvalidSetup(f"Room {room.code} has already started")
            if len(room.players) < self.rules.min_players:
                raise InvalidSetup(f"Need at least {self.rules.min_players} players")
            not_ready = [p.name for p in room.players if not p.is_ready and p.id != room.host_id]
            if not_ready:
                raise InvalidSetup(f"Waiting for: {', '.join(not_ready)}")
            chosen = get_category(category)
            if chosen is None:
                raise InvalidSetup(f"Unknown category: {category}")
            if len(chosen.items) < len(room.players):
                raise InvalidSetup(f"Category {chosen.name} has too few items")

            room.status = ROOM_SELECTING
            room.category = chosen.name
            room.game.category = chosen.name
            for player in room.players:
                player.chosen_item = None
            for player in room.players:
                if player.is_bot:
                    taken = [p.chosen_item for p in room.players if p.chosen_item]
                    player.chosen_item = free_items(chosen, taken)[0]
            room.log_event(EVENT_GAME_STARTED, category=chosen.name)

        return self._run("start", code, mutate)

    def select_item(self, code: str, user_id: str, item: str) -> ActionResult:
        def mutate(room: Room):
            player = self._require_player(room, user_id)
            if room.status != ROOM_SELECTING:
                raise InvalidSetup("Items can only be chosen after the host picks a category")
            category = get_category(room.category)
            if item not in category.items:
                raise InvalidSetup(f"{item} is not in category {category.name}")
            owner = next((p for p in room.players if p.chosen_item == item and p is not player), None)
            if owner is not None:
                raise InvalidSetup(f"{item} was already chosen by {owner.name}")
            player.chosen_item = item

        return self._run("select_item", code, mutate)

    # ------------------------------------------------------------------
    # Game actions

    def deal_cards(self, code: str, user_id: str) -> ActionResult:
        def mutate(room: Room):
            self._require_host(room, user_id)
            if room.status != ROOM_SELECTING:
                raise InvalidSetup("Choose a category before dealing")
            now = self.clock()
            engine.deal_cards(room.game, self.rng, self.rules, now=now,
                              turn_timeout=self.rules.turn_timeout)
            room.status = ROOM_PLAYING
            room.log_event(EVENT_CARDS_DEALT, first_seat=room.game.current_seat,
                           deadline=room.game.turn_deadline)
            self._sync_finish(room)

        return self._run("deal", code, mutate)

    def pass_card(self, code: str, user_id: str, card_id: str) -> ActionResult:
        def mutate(room: Room):
            player = self._require_player(room, user_id)
            from_seat = player.seat
            engine.pass_card(room.game, card_id, from_seat,
                             turn_timeout=self.rules.turn_timeout, now=self.clock())
            self._log_pass(room, from_seat, forced=False)
            self._sync_finish(room)

        return self._run("pass_card", code, mutate)

    def declare_set(self, code: str, user_id: str) -> ActionResult:
        def mutate(room: Room):
            player = self._require_player(room, user_id)
            engine.declare_set(room.game, player.seat)
            room.log_event(EVENT_SET_CALLED, player_position=player.seat, username=player.name)
            self._sync_finish(room)

        return self._run("declare_set", code, mutate)

    def handle_timeout(self, code: str, expected_seat: Optional[int] = None,
                       expected_deadline: Optional[float] = None,
                       now: Optional[float] = None) -> ActionResult:
        """
        Force a random pass for a player who let the deadline run out.

        ``expected_seat``/``expected_deadline`` pin the turn the caller saw
        expire. If that turn has already been played by the time this commits,
        the forced pass is rejected as stale with NotYourTurn.

        A successful result carries ``forced_card``: the id of the card moved,
        or None when nothing was due (game over, deadline not reached, empty
        hand) and no write happened.
        """
        forced = {}

        def mutate(room: Room):
            forced.clear()
            game = room.game
            if game.phase != PHASE_PLAYING or game.turn_deadline is None:
                return NO_CHANGE
            stale = (expected_seat is not None and expected_seat != game.current_seat) or \
                    (expected_deadline is not None and expected_deadline != game.turn_deadline)
            if stale:
                raise NotYourTurn("Turn already moved on before the timeout applied")
            current = self.clock() if now is None else now
            if current < game.turn_deadline:
                return NO_CHANGE

            from_seat = game.current_seat
            card = engine.force_pass(game, self.rng, turn_timeout=self.rules.turn_timeout, now=current)
            if card is None:
                return NO_CHANGE
            forced['card_id'] = card.id
            self._log_pass(room, from_seat, forced=True)
            self._sync_finish(room)

        result = self._run("timeout", code, mutate)
        if result.success:
            result.data['forced_card'] = forced.get('card_id')
        return result

    def reset_game(self, code: str, user_id: str) -> ActionResult:
        """Host starts another round with the same players and items."""
        def mutate(room: Room):
            self._require_host(room, user_id)
            if room.status != ROOM_FINISHED:
                raise GameNotInProgress("Only a finished game can be reset")
            engine.reset_game(room.game, now=self.clock())
            room.status = ROOM_SELECTING

        return self._run("reset", code, mutate)

    # ------------------------------------------------------------------
    # Helpers

    @staticmethod
    def _require_player(room: Room, user_id: str) -> Player:
        player = room.find_player(user_id)
        if player is None:
            raise PlayerNotFound(f"Player {user_id} is not in room {room.code}")
        return player

    @staticmethod
    def _require_host(room: Room, user_id: str):
        GameAuthority._require_player(room, user_id)
        if room.host_id != user_id:
            raise NotHost("Only the host can do that")

    @staticmethod
    def _log_pass(room: Room, from_seat: int, forced: bool):
        card = room.game.passed_card
        room.log_event(EVENT_CARD_PASSED, from_player=from_seat, to_player=card.holder,
                       card_id=card.id, item=card.item, forced=forced)

    @staticmethod
    def _sync_finish(room: Room):
        game = room.game
        if game.phase == PHASE_FINISHED and room.status != ROOM_FINISHED:
            room.status = ROOM_FINISHED
            winner = game.winner
            room.log_event(EVENT_GAME_ENDED, winner_id=winner.id if winner else None,
                           rankings=[game.players[s].id for s in game.rankings])
