"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..constants import ROOM_CODE_LENGTH


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN = "join"
    LEAVE = "leave"
    READY = "ready"
    ADD_BOT = "add_bot"
    START = "start"
    SELECT_ITEM = "select_item"
    DEAL = "deal"
    PASS_CARD = "pass_card"
    DECLARE_SET = "declare_set"
    RESET = "reset"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    JOIN_SUCCESS = "join_success"
    STATE_FULL = "state_full"
    ROOM_CLOSED = "room_closed"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    INVALID_SETUP = "INVALID_SETUP"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    CARD_NOT_HELD = "CARD_NOT_HELD"
    NO_VALID_SET = "NO_VALID_SET"
    GAME_NOT_IN_PROGRESS = "GAME_NOT_IN_PROGRESS"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    NOT_HOST = "NOT_HOST"
    ROOM_FULL = "ROOM_FULL"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ALREADY_IN_ROOM = "ALREADY_IN_ROOM"
    STALE_WRITE = "STALE_WRITE"
    ACTION_NOT_ALLOWED = "ACTION_NOT_ALLOWED"
    INTERNAL = "INTERNAL"

    @classmethod
    def from_code(cls, code: Optional[str]) -> 'ErrorCode':
        try:
            return cls(code)
        except ValueError:
            return cls.INTERNAL


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class CreateRoomEvent(BaseEvent):
    """Open a new room and take seat 0 as host."""
    type: EventType = EventType.CREATE_ROOM
    name: str = Field(..., min_length=1, max_length=30)
    max_players: Optional[int] = Field(default=None, ge=2, le=8)


class JoinEvent(BaseEvent):
    """Join room event."""
    type: EventType = EventType.JOIN
    room_code: str = Field(..., min_length=ROOM_CODE_LENGTH, max_length=ROOM_CODE_LENGTH)
    name: str = Field(..., min_length=1, max_length=30)
    # Set when reconnecting to a seat this client already holds
    player_id: Optional[str] = Field(default=None, max_length=64)

    @field_validator('room_code', mode='before')
    @classmethod
    def normalize_code(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


class LeaveEvent(BaseEvent):
    type: EventType = EventType.LEAVE


class ReadyEvent(BaseEvent):
    type: EventType = EventType.READY
    ready: bool = True


class AddBotEvent(BaseEvent):
    type: EventType = EventType.ADD_BOT


class StartEvent(BaseEvent):
    """Host picks the category."""
    type: EventType = EventType.START
    category: str = Field(..., min_length=1, max_length=30)


class SelectItemEvent(BaseEvent):
    type: EventType = EventType.SELECT_ITEM
    item: str = Field(..., min_length=1, max_length=30)


class DealEvent(BaseEvent):
    type: EventType = EventType.DEAL


class PassCardEvent(BaseEvent):
    """Pass one card to the next player."""
    type: EventType = EventType.PASS_CARD
    card_id: str = Field(..., min_length=1, max_length=60)


class DeclareSetEvent(BaseEvent):
    type: EventType = EventType.DECLARE_SET


class ResetEvent(BaseEvent):
    type: EventType = EventType.RESET


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinEvent,
    LeaveEvent,
    ReadyEvent,
    AddBotEvent,
    StartEvent,
    SelectItemEvent,
    DealEvent,
    PassCardEvent,
    DeclareSetEvent,
    ResetEvent,
    RequestStateEvent,
]


# Outbound event models
class JoinSuccessEvent(BaseModel):
    """Join success confirmation event."""
    type: OutboundEventType = OutboundEventType.JOIN_SUCCESS
    player_id: str
    room_code: str
    timestamp: float


class StateFullEvent(BaseModel):
    """Full state event; clients replace whatever they had."""
    type: OutboundEventType = OutboundEventType.STATE_FULL
    state: Dict[str, Any]
    timestamp: float


class RoomClosedEvent(BaseModel):
    type: OutboundEventType = OutboundEventType.ROOM_CLOSED
    room_code: str
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


OutboundEvent = Union[
    JoinSuccessEvent,
    StateFullEvent,
    RoomClosedEvent,
    ErrorEvent,
]


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN: JoinEvent,
    EventType.LEAVE: LeaveEvent,
    EventType.READY: ReadyEvent,
    EventType.ADD_BOT: AddBotEvent,
    EventType.START: StartEvent,
    EventType.SELECT_ITEM: SelectItemEvent,
    EventType.DEAL: DealEvent,
    EventType.PASS_CARD: PassCardEvent,
    EventType.DECLARE_SET: DeclareSetEvent,
    EventType.RESET: ResetEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
}


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")

    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_class = EVENT_MAP[event_type]

    try:
        return event_class(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_join_success_event(player_id: str, room_code: str) -> JoinSuccessEvent:
    """Create a join success event."""
    return JoinSuccessEvent(player_id=player_id, room_code=room_code, timestamp=time.time())


def create_state_full_event(state: Dict[str, Any]) -> StateFullEvent:
    """Create a full state event."""
    return StateFullEvent(state=state, timestamp=time.time())


def create_room_closed_event(room_code: str) -> RoomClosedEvent:
    return RoomClosedEvent(room_code=room_code, timestamp=time.time())
