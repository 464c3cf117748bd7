"""
Deck building, shuffling and dealing utilities.
"""

import random
from typing import Dict, List, Optional

from .constants import CARDS_PER_ITEM, HAND_SIZE
from .errors import InvalidSetup
from .models import Card, GameState, Player


def check_item_choices(players: List[Player]) -> None:
    """Every player must have chosen an item and no two may share one."""
    if not players:
        raise InvalidSetup("No players to build a deck for")

    missing = [p.name for p in players if not (p.chosen_item or '').strip()]
    if missing:
        raise InvalidSetup(f"Players without an item: {', '.join(missing)}")

    seen: Dict[str, str] = {}
    for player in players:
        if player.chosen_item in seen:
            raise InvalidSetup(
                f"{player.name} and {seen[player.chosen_item]} both chose {player.chosen_item}"
            )
        seen[player.chosen_item] = player.name


def create_deck(players: List[Player], category: str) -> List[Card]:
    """Four copies of every player's chosen item, in seat order."""
    check_item_choices(players)

    deck = []
    for player in players:
        for i in range(CARDS_PER_ITEM):
            deck.append(Card(
                id=f"{player.chosen_item}-{i + 1}",
                item=player.chosen_item,
                category=category,
            ))
    return deck


def shuffle_deck(deck: List[Card], rng: Optional[random.Random] = None) -> List[Card]:
    """
    Shuffle a deck, deterministically when a seeded rng is passed.

    Args:
        deck: Cards to shuffle
        rng: Random source; the module-level generator is used when omitted

    Returns:
        Shuffled copy of the deck
    """
    deck_copy = deck.copy()
    (rng or random).shuffle(deck_copy)
    return deck_copy


def build_deck(players: List[Player], category: str,
               rng: Optional[random.Random] = None) -> List[Card]:
    return shuffle_deck(create_deck(players, category), rng)


def deal_cards(deck: List[Card], players: List[Player]) -> List[Card]:
    """
    Deal round-robin from the top of the deck: one card to each seat per
    round, HAND_SIZE rounds.

    Returns:
        Whatever is left of the deck (empty for a correctly sized deck)
    """
    remaining = deck.copy()
    for _ in range(HAND_SIZE):
        for player in players:
            if not remaining:
                return remaining
            card = remaining.pop(0)
            card.holder = player.seat
            player.hand.append(card)
    return remaining


def get_hand_summary(hand: List[Card]) -> Dict[str, int]:
    """
    Count the cards in a hand by face item.

    Args:
        hand: Cards to summarize

    Returns:
        Dictionary mapping item to count, in first-seen order
    """
    summary: Dict[str, int] = {}
    for card in hand:
        summary[card.item] = summary.get(card.item, 0) + 1
    return summary


def validate_deck_integrity(state: GameState) -> bool:
    """
    Check that all cards are accounted for and none is duplicated.

    Args:
        state: Game state to validate

    Returns:
        True if the deck plus all hands hold exactly 4 cards per chosen item
    """
    card_ids = state.all_card_ids()
    if len(card_ids) != len(set(card_ids)):
        return False

    expected = len(state.players) * CARDS_PER_ITEM
    if len(card_ids) != expected:
        return False

    for player in state.players:
        for card in player.hand:
            if card.holder != player.seat:
                return False
    return True
