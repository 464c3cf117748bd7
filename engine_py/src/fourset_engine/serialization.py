"""
State serialization and sanitization utilities.
"""

from typing import Any, Dict, Optional

from .constants import PHASE_FINISHED, RECENT_EVENTS
from .models import Card, GameState, Player, Room


def serialize_card(card: Optional[Card]) -> Optional[Dict[str, Any]]:
    if card is None:
        return None
    return {"id": card.id, "item": card.item, "category": card.category, "holder": card.holder}


def serialize_player(player: Player, reveal_hand: bool) -> Dict[str, Any]:
    data = {
        "id": player.id,
        "name": player.name,
        "seat": player.seat,
        "chosen_item": player.chosen_item,
        "hand_count": player.hand_count,
        "matching_count": player.matching_count,
        "has_set": player.has_set,
        "rank": player.rank,
        "is_bot": player.is_bot,
        "is_ready": player.is_ready,
        "connected": player.connected,
    }
    if reveal_hand:
        data["hand"] = [serialize_card(c) for c in player.hand]
    return data


def sanitize_game(game: GameState, viewer_id: Optional[str] = None,
                  reveal_all: bool = False) -> Dict[str, Any]:
    """
    Game state safe for transmission to clients.

    Args:
        game: Game state to sanitize
        viewer_id: ID of the player viewing the state (to show their cards)
        reveal_all: Show every hand, e.g. once the game is over or locally

    Returns:
        Sanitized state dictionary safe for JSON transmission
    """
    return {
        "phase": game.phase,
        "category": game.category,
        "current_seat": game.current_seat,
        "direction": game.direction,
        "deck_count": len(game.deck),
        "players": [
            serialize_player(p, reveal_all or p.id == viewer_id) for p in game.players
        ],
        "passed_card": serialize_card(game.passed_card) if reveal_all else None,
        "winner_seat": game.winner_seat,
        "rankings": list(game.rankings),
        "started_at": game.started_at,
        "turn_deadline": game.turn_deadline,
        "game_log": game.game_log[-RECENT_EVENTS:],
    }


def sanitize_room(room: Room, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Room state for one connection: only the viewer's own hand is included
    until the game is over, when every hand is shown.
    """
    finished = room.game.phase == PHASE_FINISHED
    return {
        "id": room.id,
        "code": room.code,
        "version": room.version,
        "host_id": room.host_id,
        "max_players": room.max_players,
        "status": room.status,
        "category": room.category,
        "game": sanitize_game(room.game, viewer_id, reveal_all=finished),
        "events": [
            {"sequence": e.sequence, "type": e.type, "data": _public_event_data(e.data),
             "created_at": e.created_at}
            for e in room.events[-RECENT_EVENTS:]
        ],
    }


def _public_event_data(data: Dict[str, Any]) -> Dict[str, Any]:
    # Which card changed hands is private to the two players involved.
    return {k: v for k, v in data.items() if k not in ("card_id", "item")}


def get_public_room_info(room: Room) -> Dict[str, Any]:
    """Minimal room info for room listings."""
    return {
        "code": room.code,
        "status": room.status,
        "player_count": len(room.players),
        "max_players": room.max_players,
        "category": room.category,
    }
