"""
FastAPI WebSocket server for networked four-of-a-kind rooms.

Every inbound action goes through the GameAuthority. Clients never receive
the authority's return value as state; they receive the ``state_full`` that
the authority publishes after each commit, personalized per connection, in
commit order.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Dict, Optional, Set, Tuple

import orjson
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..authority import ActionResult, GameAuthority
from ..bots.greedy import GreedyBot
from ..catalog import CATEGORIES
from ..constants import ROOM_PLAYING
from ..models import Room
from ..rules import RuleConfig, default_rules
from ..serialization import get_public_room_info, sanitize_room
from ..supervisor import TimeoutSupervisor
from .events import (
    AddBotEvent, CreateRoomEvent, DealEvent, DeclareSetEvent, ErrorCode,
    JoinEvent, LeaveEvent, PassCardEvent, ReadyEvent, RequestStateEvent,
    ResetEvent, SelectItemEvent, StartEvent, create_error_event,
    create_join_success_event, create_room_closed_event, create_state_full_event,
    parse_inbound_event,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def dump_event(event: BaseModel) -> str:
    return orjson.dumps(event.model_dump(mode='json')).decode()


class ConnectionManager:
    """Manages WebSocket connections and broadcasting."""

    def __init__(self):
        self.room_connections: Dict[str, Set[WebSocket]] = defaultdict(set)
        self.connection_players: Dict[WebSocket, str] = {}
        self.connection_rooms: Dict[WebSocket, str] = {}

    def connect(self, websocket: WebSocket, code: str, player_id: str):
        """Attach an accepted socket to a player seat in a room."""
        self.room_connections[code].add(websocket)
        self.connection_players[websocket] = player_id
        self.connection_rooms[websocket] = code
        logger.info(f"Player {player_id} connected to room {code}")

    def disconnect(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        """Detach a socket; returns the (player_id, room code) it was bound to."""
        player_id = self.connection_players.pop(websocket, None)
        code = self.connection_rooms.pop(websocket, None)

        if code is not None:
            self.room_connections[code].discard(websocket)
            if not self.room_connections[code]:
                del self.room_connections[code]

        if player_id:
            logger.info(f"Player {player_id} disconnected from room {code}")
        return player_id, code

    def identity(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        return self.connection_players.get(websocket), self.connection_rooms.get(websocket)

    def connection_count(self) -> int:
        return sum(len(conns) for conns in self.room_connections.values())

    async def send(self, websocket: WebSocket, event: BaseModel):
        await websocket.send_text(dump_event(event))

    async def send_state(self, websocket: WebSocket, room: Room, player_id: Optional[str]):
        await self.send(websocket, create_state_full_event(sanitize_room(room, player_id)))

    async def broadcast_room(self, code: str, room: Optional[Room]):
        """Send each connection in the room its own view of the committed state."""
        for websocket in list(self.room_connections.get(code, ())):
            player_id = self.connection_players.get(websocket)
            try:
                if room is None:
                    await self.send(websocket, create_room_closed_event(code))
                    self.disconnect(websocket)
                elif room.find_player(player_id) is None:
                    # Seat is gone (left from another socket); stop following the room
                    self.disconnect(websocket)
                else:
                    await self.send_state(websocket, room, player_id)
            except Exception as e:
                logger.error(f"Error broadcasting to {player_id}: {e}")
                self.disconnect(websocket)


class GameServer:
    """
    Owns the authority, the connection registry, the timeout supervisor and
    the bot scheduler for one process.
    """

    def __init__(self, authority: Optional[GameAuthority] = None,
                 rules: RuleConfig = default_rules, poll_interval: float = 1.0):
        self.rules = rules
        self.authority = authority or GameAuthority(rules=rules)
        self.manager = ConnectionManager()
        self.supervisor = TimeoutSupervisor(self.authority, poll_interval=poll_interval)
        self.bot_tasks: Dict[str, asyncio.Task] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._unsubscribe = None

    # ------------------------------------------------------------------
    # Lifecycle

    async def startup(self):
        self._loop = asyncio.get_running_loop()
        self._outbox = asyncio.Queue()
        self._unsubscribe = self.authority.subscribe(self._on_commit)
        self._worker = asyncio.create_task(self._broadcast_worker())
        self.supervisor.start()
        logger.info("Game server started")

    async def shutdown(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.supervisor.stop()
        tasks = list(self.bot_tasks.values())
        if self._worker is not None:
            tasks.append(self._worker)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.bot_tasks.clear()
        self._worker = None
        logger.info("Game server stopped")

    def _on_commit(self, code: str, room: Optional[Room]):
        # May run on any thread that commits; hand the snapshot to the loop
        if self._loop is None or self._outbox is None:
            return
        self._loop.call_soon_threadsafe(self._outbox.put_nowait, (code, room))

    async def _broadcast_worker(self):
        """Single consumer so that clients see commits in commit order."""
        while True:
            code, room = await self._outbox.get()
            try:
                await self.manager.broadcast_room(code, room)
                if room is not None:
                    self.schedule_bot_actions(code, room)
            except Exception:
                logger.exception(f"Failed to publish room {code}")

    # ------------------------------------------------------------------
    # Bots

    def schedule_bot_actions(self, code: str, room: Room):
        """Queue one bot move for the room if a bot is due to act."""
        if room.status != ROOM_PLAYING:
            return
        game = room.game
        due = any(
            p.is_bot and (p.has_set or p.seat == game.current_seat)
            for p in game.players
        )
        if not due:
            return
        pending = self.bot_tasks.get(code)
        if pending is not None and not pending.done():
            return
        self.bot_tasks[code] = asyncio.create_task(self.execute_bot_action(code))

    async def execute_bot_action(self, code: str):
        """Act for the first bot with something to do, after a short delay."""
        await asyncio.sleep(self.rules.bot_delay)

        room = self.authority.get_room(code)
        if room is None or room.status != ROOM_PLAYING:
            return

        for player in room.players:
            if not player.is_bot:
                continue
            action = GreedyBot(player.id).choose_action(room.game)
            if action is None:
                continue

            logger.info(f"Bot {player.name} in room {code} chose: {action}")
            if action.type == 'declare_set':
                result = self.authority.declare_set(code, player.id)
            else:
                result = self.authority.pass_card(code, player.id, action.data['card_id'])
            if not result.success:
                logger.warning(f"Bot {player.name} action failed: {result.error_message}")
            return

    # ------------------------------------------------------------------
    # Event handling

    async def send_error(self, websocket: WebSocket, code: ErrorCode, message: str):
        await self.manager.send(websocket, create_error_event(code, message))

    async def send_result_error(self, websocket: WebSocket, result: ActionResult):
        await self.send_error(websocket, ErrorCode.from_code(result.error_code),
                              result.error_message or "")

    async def handle_event(self, websocket: WebSocket, event) -> Optional[ActionResult]:
        """Handle an inbound event."""
        if isinstance(event, (CreateRoomEvent, JoinEvent)):
            if self.manager.identity(websocket)[0] is not None:
                await self.send_error(websocket, ErrorCode.ACTION_NOT_ALLOWED, "Already in a room")
                return None
            if isinstance(event, CreateRoomEvent):
                return await self.handle_create_room(websocket, event)
            return await self.handle_join(websocket, event)

        player_id, code = self.manager.identity(websocket)
        if not player_id or not code:
            await self.send_error(websocket, ErrorCode.ACTION_NOT_ALLOWED, "Not in a room")
            return None

        if isinstance(event, RequestStateEvent):
            return await self.handle_request_state(websocket, code, player_id)

        result = self.apply_room_action(event, code, player_id)
        if not result.success:
            await self.send_result_error(websocket, result)
        elif isinstance(event, LeaveEvent):
            self.manager.disconnect(websocket)
        return result

    def apply_room_action(self, event, code: str, player_id: str) -> ActionResult:
        authority = self.authority
        if isinstance(event, LeaveEvent):
            return authority.leave_room(code, player_id)
        if isinstance(event, ReadyEvent):
            return authority.set_ready(code, player_id, event.ready)
        if isinstance(event, AddBotEvent):
            return authority.add_bot(code, player_id)
        if isinstance(event, StartEvent):
            return authority.start_game(code, player_id, event.category)
        if isinstance(event, SelectItemEvent):
            return authority.select_item(code, player_id, event.item)
        if isinstance(event, DealEvent):
            return authority.deal_cards(code, player_id)
        if isinstance(event, PassCardEvent):
            return authority.pass_card(code, player_id, event.card_id)
        if isinstance(event, DeclareSetEvent):
            return authority.declare_set(code, player_id)
        if isinstance(event, ResetEvent):
            return authority.reset_game(code, player_id)
        raise ValueError(f"Unhandled event type: {type(event).__name__}")

    async def handle_create_room(self, websocket: WebSocket, event: CreateRoomEvent) -> ActionResult:
        player_id = str(uuid.uuid4())
        result = self.authority.create_room(player_id, event.name, event.max_players)
        if not result.success:
            await self.send_result_error(websocket, result)
            return result

        code = result.room.code
        self.manager.connect(websocket, code, player_id)
        await self.manager.send(websocket, create_join_success_event(player_id, code))
        return result

    async def handle_join(self, websocket: WebSocket, event: JoinEvent) -> ActionResult:
        player_id = event.player_id or str(uuid.uuid4())
        result = self.authority.join_room(event.room_code, player_id, event.name)
        if not result.success:
            await self.send_result_error(websocket, result)
            return result

        self.manager.connect(websocket, event.room_code, player_id)
        await self.manager.send(websocket, create_join_success_event(player_id, event.room_code))

        if result.data.get('already_in_room'):
            # Reconnect: nothing new was committed unless the seat was marked offline
            reconnect = self.authority.set_connected(event.room_code, player_id, True)
            room = reconnect.room if reconnect.success else result.room
            await self.manager.send_state(websocket, room, player_id)
        return result

    async def handle_request_state(self, websocket: WebSocket, code: str, player_id: str) -> ActionResult:
        room = self.authority.get_room(code)
        if room is None:
            await self.send_error(websocket, ErrorCode.ROOM_NOT_FOUND, f"No room with code {code}")
            return ActionResult(False, error_code=ErrorCode.ROOM_NOT_FOUND.value)
        await self.manager.send_state(websocket, room, player_id)
        return ActionResult.ok(room)

    async def handle_disconnect(self, websocket: WebSocket):
        player_id, code = self.manager.disconnect(websocket)
        if player_id and code and self.authority.get_room(code) is not None:
            self.authority.set_connected(code, player_id, False)

    async def serve(self, websocket: WebSocket):
        """Main receive loop for one client."""
        await websocket.accept()
        logger.info("WebSocket connection accepted")

        try:
            while True:
                raw_data = await websocket.receive_text()
                try:
                    event = parse_inbound_event(orjson.loads(raw_data))
                    await self.handle_event(websocket, event)
                except ValueError as e:
                    await self.send_error(websocket, ErrorCode.INVALID_EVENT, str(e))
                except Exception:
                    logger.exception("Error handling event")
                    await self.send_error(websocket, ErrorCode.INTERNAL, "Internal server error")
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected")
        finally:
            await self.handle_disconnect(websocket)


def create_app(rules: RuleConfig = default_rules,
               authority: Optional[GameAuthority] = None,
               poll_interval: float = 1.0) -> FastAPI:
    """Build the FastAPI app around a fresh GameServer."""
    server = GameServer(authority=authority, rules=rules, poll_interval=poll_interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await server.startup()
        try:
            yield
        finally:
            await server.shutdown()

    app = FastAPI(title="Four of a Kind Game Engine", version="1.0.0", lifespan=lifespan)
    app.state.server = server

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        return {"message": "Four of a Kind Game API", "version": "1.0.0"}

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "rooms": len(server.authority.room_codes()),
            "connections": server.manager.connection_count(),
        }

    @app.get("/categories")
    async def list_categories():
        return [
            {"name": c.name, "icon": c.icon, "items": list(c.items)}
            for c in CATEGORIES
        ]

    @app.get("/rooms/{code}")
    async def room_info(code: str):
        room = server.authority.get_room(code)
        if room is None:
            raise HTTPException(status_code=404, detail=f"No room with code {code.upper()}")
        return get_public_room_info(room)

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await server.serve(websocket)

    return app
