"""
WebSocket server and event handling for networked rooms.
"""

from .server import ConnectionManager, GameServer, create_app

__all__ = ["ConnectionManager", "GameServer", "create_app"]
