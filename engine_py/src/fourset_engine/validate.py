"""
Precondition checks for player actions.
"""

from typing import Optional

from .constants import PHASE_PLAYING, PHASE_SETUP
from .errors import (
    CARD_NOT_HELD, GAME_NOT_IN_PROGRESS, INVALID_SETUP, NO_VALID_SET,
    NOT_YOUR_TURN, PLAYER_NOT_FOUND, InvalidSetup, raise_error,
)
from .evaluate import evaluate_hand
from .models import Card, GameState
from .shuffle import check_item_choices


class ValidationResult:
    """Result of validating an action against the current state."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        card: Optional[Card] = None,
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.card = card

    @classmethod
    def success(cls, card: Optional[Card] = None) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True, card=card)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)

    def raise_if_invalid(self) -> 'ValidationResult':
        if not self.valid:
            raise_error(self.error_code, self.error_message)
        return self


def validate_deal(state: GameState) -> ValidationResult:
    """Check the game can leave setup: right phase and distinct item choices."""
    if state.phase != PHASE_SETUP:
        return ValidationResult.error(
            GAME_NOT_IN_PROGRESS,
            f"Cards can only be dealt during setup (current: {state.phase})"
        )
    if len(state.players) < 2:
        return ValidationResult.error(INVALID_SETUP, "Need at least 2 players")
    try:
        check_item_choices(state.players)
    except InvalidSetup as e:
        return ValidationResult.error(e.code, e.message)
    return ValidationResult.success()


def validate_pass(state: GameState, from_seat: int, card_id: str) -> ValidationResult:
    """
    Validate a pass attempt.

    Args:
        state: Current game state
        from_seat: Seat of the player passing
        card_id: Card being passed

    Returns:
        ValidationResult carrying the card on success
    """
    if state.phase != PHASE_PLAYING:
        return ValidationResult.error(
            GAME_NOT_IN_PROGRESS,
            f"Game is not in playing phase (current: {state.phase})"
        )

    player = state.player_at(from_seat)
    if player is None:
        return ValidationResult.error(PLAYER_NOT_FOUND, f"No player in seat {from_seat}")

    if from_seat != state.current_seat:
        return ValidationResult.error(
            NOT_YOUR_TURN,
            f"It is seat {state.current_seat}'s turn, not seat {from_seat}'s"
        )

    card = player.find_card(card_id)
    if card is None:
        return ValidationResult.error(CARD_NOT_HELD, f"{player.name} does not hold {card_id}")

    return ValidationResult.success(card)


def validate_declare(state: GameState, seat: int) -> ValidationResult:
    """A set can be declared from any seat, on anyone's turn."""
    if state.phase != PHASE_PLAYING:
        return ValidationResult.error(
            GAME_NOT_IN_PROGRESS,
            f"Game is not in playing phase (current: {state.phase})"
        )

    player = state.player_at(seat)
    if player is None:
        return ValidationResult.error(PLAYER_NOT_FOUND, f"No player in seat {seat}")

    result = evaluate_hand(player.hand)
    if not result.has_set:
        return ValidationResult.error(
            NO_VALID_SET,
            f"{player.name} has only {result.matching_count} matching cards"
        )
    return ValidationResult.success()
