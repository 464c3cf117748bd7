"""Turn order helpers."""

from typing import Iterator

from .constants import CLOCKWISE, COUNTERCLOCKWISE


def next_seat(direction: str, current: int, player_count: int) -> int:
    if player_count <= 0:
        raise ValueError("player_count must be positive")
    if direction == CLOCKWISE:
        return (current + 1) % player_count
    if direction == COUNTERCLOCKWISE:
        return (current - 1 + player_count) % player_count
    raise ValueError(f"Unknown turn direction: {direction}")


def turn_order(direction: str, start: int, player_count: int) -> Iterator[int]:
    """Endless sequence of seats starting at ``start``."""
    seat = start
    while True:
        yield seat
        seat = next_seat(direction, seat, player_count)
