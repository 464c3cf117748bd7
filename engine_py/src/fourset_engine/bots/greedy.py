"""
Greedy bot: hoards whichever item it already holds the most of.
"""

import random
from typing import Optional

from ..models import Card, GameState, Player
from ..shuffle import get_hand_summary
from .base import BaseBot


class GreedyBot(BaseBot):
    """
    Keeps the item it is closest to completing and passes away the card of
    the item it holds the fewest of. Between equally rare items it prefers to
    give up one that is not its own chosen item.
    """

    def choose_card(self, player: Player, state: GameState) -> Card:
        summary = get_hand_summary(player.hand)
        keep = max(summary, key=lambda item: (summary[item], item == player.chosen_item))

        def cost(card: Card):
            return (
                card.item == keep,
                summary[card.item],
                card.item == player.chosen_item,
            )

        return min(player.hand, key=cost)


class RandomBot(BaseBot):
    """Passes a uniformly random card; a weak opponent for local games."""

    def __init__(self, player_id: str, rng: Optional[random.Random] = None):
        super().__init__(player_id)
        self.rng = rng or random.Random()

    def choose_card(self, player: Player, state: GameState) -> Card:
        return self.rng.choice(player.hand)
