"""Lobby server that admits players and game server that relays their packets."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .mapfiles import BACKGROUND_FILE, MAP_FILE, RELATIVE_MAPS_PATH, MapInfo, PathLike
from .messages import (
    ClientPacket,
    CreateFile,
    RequestMap,
    SetId,
    SetMap,
    SetName,
    SetPlayers,
    StartGame,
    read_packet,
    write_packet,
)
from .packets import PACKET_SIZE, IndexedPacket, TimedQueue, serialize_queue

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """The client did not introduce itself with its name."""

    def __init__(self, message: str = "Client-side authentication error") -> None:
        super().__init__(message)


@dataclass(eq=False)
class Player:
    """A connected player with its id, name and connection streams."""

    id: int
    name: str
    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter

    @property
    def peer(self) -> object:
        """The remote address of the player's connection."""
        return self.writer.get_extra_info("peername")


class LobbyServer:
    """Accepts connections, greets clients and sends them the map files."""

    def __init__(
        self,
        host: str,
        port: int,
        map_info: MapInfo,
        maps_path: PathLike = RELATIVE_MAPS_PATH,
    ) -> None:
        self._host = host
        self._port = port
        self._map = map_info
        self._maps_path = Path(maps_path)
        self._server: asyncio.base_events.Server | None = None
        self._connections: list[asyncio.Task[Player]] = []

    @property
    def port(self) -> int:
        """The port the lobby listens on."""
        if self._server is None:
            raise RuntimeError("lobby server is not started")
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """Bind the listening socket and start accepting players."""
        if self._server is not None:
            raise RuntimeError("lobby server already started")
        self._server = await asyncio.start_server(self._accept, self._host, self._port)
        logger.info(
            "Listening for new connections on %s",
            self._server.sockets[0].getsockname(),
        )

    async def get_lobby(self) -> list[Player]:
        """Stop accepting players and return those who joined successfully."""
        if self._server is None:
            raise RuntimeError("lobby server is not started")
        self._server.close()
        logger.info("Stop listening for new connections")
        results = await asyncio.gather(*self._connections, return_exceptions=True)
        players = []
        for result in results:
            if isinstance(result, Player):
                players.append(result)
            else:
                logger.warning("Connection dropped: %s", result)
        return players

    def _accept(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        player_id = len(self._connections) & 0xFF
        task = asyncio.ensure_future(self._handshake(player_id, reader, writer))
        self._connections.append(task)

    async def _handshake(
        self,
        player_id: int,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> Player:
        try:
            return await self._welcome(player_id, reader, writer)
        except BaseException:
            writer.close()
            raise

    async def _welcome(
        self,
        player_id: int,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> Player:
        greeting = await read_packet(reader, ClientPacket)
        if not isinstance(greeting, SetName):
            raise AuthenticationError()
        name = greeting.name
        await write_packet(writer, SetId(player_id))
        await write_packet(writer, SetMap(self._map.name))

        request = await read_packet(reader, ClientPacket)
        peer = writer.get_extra_info("peername")
        if isinstance(request, RequestMap):
            await self._send_map(writer)
            logger.info("Map successfully sent to %s (%s)", name, peer)

        logger.info("%s joined the game from: %s", name, peer)
        return Player(player_id, name, reader, writer)

    async def _send_map(self, writer: asyncio.StreamWriter) -> None:
        map_file = self._maps_path / self._map.name / MAP_FILE
        await self._send_file(writer, MAP_FILE, map_file)
        for texture in self._map.texture_paths(self._maps_path):
            await self._send_file(writer, texture.name, texture)
        background = self._map.background_path(self._maps_path)
        if background is not None:
            await self._send_file(writer, BACKGROUND_FILE, background)

    @staticmethod
    async def _send_file(writer: asyncio.StreamWriter, name: str, path: Path) -> None:
        contents = await asyncio.to_thread(path.read_bytes)
        await write_packet(writer, CreateFile(name, contents))


class GameServer:
    """Collects players' game packets into time slots and broadcasts them."""

    def __init__(self, lobby: Iterable[Player], slot_duration: float, slots_stored: int) -> None:
        if slot_duration <= 0:
            raise ValueError("slot duration must be positive")
        if slots_stored < 0:
            raise ValueError("number of stored slots must not be negative")
        self.players = list(lobby)
        self.slot_duration = slot_duration
        self.slots_stored = slots_stored
        self._running = False
        self._listen_tasks: list[asyncio.Task[None]] = []
        self._send_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Whether the server is relaying packets."""
        return self._running

    async def run(self, packet_size: int = PACKET_SIZE) -> None:
        """Announce the players, start the game and begin relaying packets."""
        if self._running:
            raise RuntimeError("game server is already running")
        self._running = True

        roster = SetPlayers(tuple((p.id, p.name) for p in self.players))
        for player in self.players:
            with contextlib.suppress(ConnectionError, OSError):
                await write_packet(player.writer, roster)
                await write_packet(player.writer, StartGame())

        inbox: asyncio.Queue[IndexedPacket] = asyncio.Queue()
        logger.info("Start listening to incoming packets")
        self._listen_tasks = [
            asyncio.ensure_future(self._listen(player, packet_size, inbox))
            for player in self.players
        ]
        logger.info("Start broadcasting")
        self._send_task = asyncio.ensure_future(self._broadcast(inbox))

    def stop(self) -> None:
        """Stop relaying packets."""
        self._running = False
        for task in self._listen_tasks:
            task.cancel()
        self._listen_tasks = []
        if self._send_task is not None:
            self._send_task.cancel()
            self._send_task = None
        logger.info("Server stopped")

    async def _listen(
        self,
        player: Player,
        packet_size: int,
        inbox: asyncio.Queue[IndexedPacket],
    ) -> None:
        while self._running:
            try:
                data = await player.reader.read(packet_size)
            except (ConnectionError, OSError) as exc:
                logger.warning("%s occured with %s. Closing connection", exc, player.peer)
                break
            if not data:
                logger.warning(
                    "Player %s (%s) seems to have disconnected. Closing connection",
                    player.name,
                    player.peer,
                )
                break
            logger.debug("Received %d bytes from %s", len(data), player.peer)
            inbox.put_nowait(IndexedPacket(player.id, data.ljust(packet_size, b"\x00")))

    async def _broadcast(self, inbox: asyncio.Queue[IndexedPacket]) -> None:
        queue = TimedQueue(self.slot_duration)
        window = self.slot_duration * self.slots_stored
        while self._running:
            remaining = window - queue.time_since_take()
            if remaining > 0:
                try:
                    packet = await asyncio.wait_for(inbox.get(), remaining)
                except asyncio.TimeoutError:
                    pass
                else:
                    logger.debug("received: %s", packet)
                    queue.push(packet)
                    continue

            slots = queue.take(self.slots_stored)
            data = serialize_queue(slots)
            for player in self.players:
                try:
                    player.writer.write(data)
                    await player.writer.drain()
                except (ConnectionError, OSError):
                    continue
                logger.debug("Sending: %s to %s", slots, player.peer)