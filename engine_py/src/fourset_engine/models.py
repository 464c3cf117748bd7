"""Game models and data structures"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import CLOCKWISE, PHASE_SETUP, ROOM_WAITING


@dataclass
class Card:
    id: str
    item: str
    category: str
    holder: Optional[int] = None  # seat of the hand holding it


@dataclass
class Player:
    id: str
    name: str
    seat: int
    chosen_item: Optional[str] = None
    hand: List[Card] = field(default_factory=list)
    matching_count: int = 0
    has_set: bool = False
    rank: Optional[int] = None
    is_bot: bool = False
    is_ready: bool = False  # networked lobby only
    connected: bool = True

    @property
    def hand_count(self) -> int:
        return len(self.hand)

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None


@dataclass
class GameState:
    players: List[Player] = field(default_factory=list)
    phase: str = PHASE_SETUP  # setup|dealing|playing|finished
    category: str = ''
    deck: List[Card] = field(default_factory=list)
    current_seat: int = 0
    direction: str = CLOCKWISE
    passed_card: Optional[Card] = None
    winner_seat: Optional[int] = None
    rankings: List[int] = field(default_factory=list)  # seats, best first
    started_at: float = field(default_factory=time.time)
    turn_deadline: Optional[float] = None
    game_log: List[str] = field(default_factory=list)

    def player_at(self, seat: int) -> Optional[Player]:
        if 0 <= seat < len(self.players):
            return self.players[seat]
        return None

    @property
    def current_player(self) -> Optional[Player]:
        return self.player_at(self.current_seat)

    @property
    def winner(self) -> Optional[Player]:
        if self.winner_seat is None:
            return None
        return self.player_at(self.winner_seat)

    def total_cards(self) -> int:
        return len(self.deck) + sum(len(p.hand) for p in self.players)

    def all_card_ids(self) -> List[str]:
        ids = [c.id for c in self.deck]
        for player in self.players:
            ids.extend(c.id for c in player.hand)
        return ids


@dataclass
class GameEvent:
    sequence: int
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)


@dataclass
class Room:
    id: str
    code: str
    host_id: str
    max_players: int = 4
    status: str = ROOM_WAITING  # waiting|selecting|playing|finished
    category: Optional[str] = None
    game: GameState = field(default_factory=GameState)
    events: List[GameEvent] = field(default_factory=list)
    version: int = 0
    created_at: float = field(default_factory=time.time)

    @property
    def players(self) -> List[Player]:
        return self.game.players

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.game.players:
            if player.id == player_id:
                return player
        return None

    def log_event(self, event_type: str, **data) -> GameEvent:
        event = GameEvent(sequence=len(self.events) + 1, type=event_type, data=data)
        self.events.append(event)
        return event
