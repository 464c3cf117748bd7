"""
Computer-controlled players.
"""

from .base import BaseBot, BotAction
from .greedy import GreedyBot, RandomBot

__all__ = ["BaseBot", "BotAction", "GreedyBot", "RandomBot"]
