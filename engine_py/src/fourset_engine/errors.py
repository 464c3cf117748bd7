# engine_py/src/fourset_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Specific error codes
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
INTERNAL_ERROR = "INTERNAL_ERROR"


class _CodedError(GameError):
    code = INTERNAL_ERROR

    def __init__(self, message: str = ""):
        super().__init__(type(self).code, message)


class InvalidSetup(_CodedError):
    code = INVALID_SETUP


class NotYourTurn(_CodedError):
    code = NOT_YOUR_TURN


class CardNotHeld(_CodedError):
    code = CARD_NOT_HELD


class NoValidSet(_CodedError):
    code = NO_VALID_SET


class GameNotInProgress(_CodedError):
    code = GAME_NOT_IN_PROGRESS


class PlayerNotFound(_CodedError):
    code = PLAYER_NOT_FOUND


class NotHost(_CodedError):
    code = NOT_HOST


class RoomFull(_CodedError):
    code = ROOM_FULL


class RoomNotFound(_CodedError):
    code = ROOM_NOT_FOUND


class AlreadyInRoom(_CodedError):
    """The caller already holds a seat; joins treat this as success."""
    code = ALREADY_IN_ROOM


class StaleWrite(_CodedError):
    """Optimistic write lost against a newer version of the record."""
    code = STALE_WRITE


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        InvalidSetup, NotYourTurn, CardNotHeld, NoValidSet, GameNotInProgress,
        PlayerNotFound, NotHost, RoomFull, RoomNotFound, AlreadyInRoom, StaleWrite,
    )
}

# Helper function to raise common errors
def raise_error(code: str, message: str):
    error_cls = ERRORS_BY_CODE.get(code)
    if error_cls is None:
        raise GameError(code, message)
    raise error_cls(message)
