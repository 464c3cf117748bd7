"""Game constants"""

import string

# Game phases
PHASE_SETUP = 'setup'
PHASE_DEALING = 'dealing'
PHASE_PLAYING = 'playing'
PHASE_FINISHED = 'finished'

# Turn directions
CLOCKWISE = 'clockwise'
COUNTERCLOCKWISE = 'counterclockwise'

# Four copies of every chosen item are dealt, four cards per hand, four of a kind wins
CARDS_PER_ITEM = 4
HAND_SIZE = 4
SET_SIZE = 4

# Room lifecycle (networked variant)
ROOM_WAITING = 'waiting'
ROOM_SELECTING = 'selecting'
ROOM_PLAYING = 'playing'
ROOM_FINISHED = 'finished'

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_KEY_PREFIX = 'room:'

# Room event log entries
EVENT_PLAYER_JOINED = 'player_joined'
EVENT_PLAYER_LEFT = 'player_left'
EVENT_GAME_STARTED = 'game_started'
EVENT_CARDS_DEALT = 'cards_dealt'
EVENT_CARD_PASSED = 'card_passed'
EVENT_SET_CALLED = 'set_called'
EVENT_GAME_ENDED = 'game_ended'

RECENT_EVENTS = 10

BOT_NAMES = ['Ada', 'Bolt', 'Cog', 'Dot', 'Echo', 'Flux', 'Gizmo']


def room_key(code: str) -> str:
    return f"{ROOM_KEY_PREFIX}{code.upper()}"
