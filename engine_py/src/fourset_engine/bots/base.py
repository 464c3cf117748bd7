"""
Base bot interface and utilities.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..constants import PHASE_PLAYING
from ..models import Card, GameState, Player


class BotAction:
    """Represents a bot action."""

    def __init__(self, action_type: str, **kwargs):
        self.type = action_type
        self.data = kwargs

    @classmethod
    def pass_card(cls, card_id: str) -> 'BotAction':
        """Create a pass action."""
        return cls('pass_card', card_id=card_id)

    @classmethod
    def declare_set(cls) -> 'BotAction':
        """Create a declare action."""
        return cls('declare_set')

    def __repr__(self) -> str:
        return f"BotAction({self.type!r}, {self.data!r})"


class BaseBot(ABC):
    """Abstract base class for bot players."""

    def __init__(self, player_id: str):
        self.player_id = player_id

    @abstractmethod
    def choose_card(self, player: Player, state: GameState) -> Card:
        """Pick the card to pass from a non-empty hand."""

    def choose_action(self, state: GameState) -> Optional[BotAction]:
        """
        Choose an action based on the current game state.

        A bot holding a set always declares it, on anyone's turn. Otherwise it
        passes a card when the turn is its own.

        Args:
            state: Current game state

        Returns:
            BotAction to take, or None if no action needed
        """
        if state.phase != PHASE_PLAYING:
            return None

        player = self.get_player(state)
        if player is None:
            return None

        if player.has_set:
            return BotAction.declare_set()

        if not self.is_my_turn(state) or not player.hand:
            return None

        return BotAction.pass_card(self.choose_card(player, state).id)

    def get_player(self, state: GameState) -> Optional[Player]:
        for player in state.players:
            if player.id == self.player_id:
                return player
        return None

    def is_my_turn(self, state: GameState) -> bool:
        """Check if it's this bot's turn."""
        current = state.current_player
        return current is not None and current.id == self.player_id
