# smognet

`smognet` is the networking side of a multiplayer game built on a particle
simulation. It uses only the standard library and runs on Python 3.10 or later.

## Modules

- **`smognet.packets`** holds the fixed-size game packets and the tools that group them.
  - Every game packet is 9 bytes long. The packet types are `Spawn`, `Motor`, `Muzzle`, `ResetMuzzle`, `Fire`, `Thrust` and `Dash`. All of them subclass `GamePacket`.
  - A packet with an unknown kind byte decodes to `NoPacket`.
  - `IndexedPacket` adds the id of the player who sent the packet.
  - `serialize_queue` and `deserialize_queue` pack time slots of indexed packets into one byte stream and unpack them again.
  - `TimedQueue` sorts elements into time slots.
- **`smognet.messages`** holds the length-prefixed handshake messages.
  - The client messages are `SetName`, `RequestMap` and `ClientOk`. They are subclasses of `ClientPacket`.
  - The server messages are `SetMap`, `CreateFile`, `SetPlayers`, `SetId` and `StartGame`. They are subclasses of `ServerPacket`.
  - The async functions `read_packet` and `write_packet` move these messages over asyncio streams.
- **`smognet.mapfiles`** describes where a map's files live on disk.
  - `MapInfo` and `Spawn` hold a map's name, spawn points and image counts.
  - `texture_paths`, `background_path` and `map_exists` build or check the paths of a map's files.
  - The module also defines the path constants such as `RELATIVE_MAPS_PATH` and `MAP_FILE`.
- **`smognet.server`** holds the two servers.
  - `LobbyServer` admits players and sends them the map files.
  - `GameServer` relays game packets between the players.
  - `Player` is a connected player.
  - A client that does not open with its name fails with `AuthenticationError`.
- **`smognet.console`** holds helpers for an operator arranging the lobby.
  - `parse_swap` parses a swap command.
  - `swap_ids` swaps the ids of two players.
  - `format_teams` and `display_players` show the players grouped by team.

## Game packets

Every game packet encodes to exactly nine bytes:

- The first byte gives the kind of packet.
- The remaining bytes hold the packet's fields in big-endian order.
- Unused bytes are zero.

Float fields are rounded to single precision when a packet is created. Because of this, a packet compares equal to itself after an encode and decode.

```python
from smognet.packets import GamePacket, Motor

packet = Motor(69000, 53.2)
data = packet.to_bytes()                  # 9 bytes
assert GamePacket.from_bytes(data) == packet
```

`GamePacket.from_bytes` raises `ValueError` if it is given anything other than 9 bytes.

### Indexed packets

An `IndexedPacket` is one id byte followed by the packet's contents. The contents are either a `GamePacket` or raw bytes.

`IndexedPacket.from_bytes(data, decode)` decodes the contents with `decode`. By default `decode` is `GamePacket.from_bytes`.

### Slot streams

`serialize_queue(slots)` writes each slot as a count byte followed by its packets. A slot may hold at most 255 packets.

`deserialize_queue(buffer, size, decode)` returns a pair:

- the complete slots it found;
- the bytes of a trailing incomplete slot.

Put those leftover bytes in front of the next chunk of received data before you decode it.

## Timed queue

```python
from smognet.packets import TimedQueue

queue = TimedQueue(0.0023)    # slot length in seconds
queue.push(item)              # goes into the slot for the current moment
slots = queue.take(16)        # exactly 16 slots, padded with empty ones
```

Slot 0 starts when the queue is created, and again at each `take`.

- `len(queue)` gives the number of slots held.
- `queue.time_since_take()` gives the seconds since the last `take`.

## Messages

Each message encodes as a variant index followed by its fields:

- Integers are written as varints.
- Strings and byte strings carry a length prefix.

`as_packet()` puts a four-byte big-endian length in front of the message. `from_packet()` reads one back. Decoding raises `ValueError` for:

- an unknown variant;
- input that is cut short.

## Maps

A map lives in a directory named after it under the maps directory. The default maps directory is `RELATIVE_MAPS_PATH`, which is `assets/maps`. The map directory holds:

- `map.smog`
- `texture_0.png`, `texture_1.png`, …
- `background.png`, if the map has a background

`MapInfo.texture_paths(base_path)` and `MapInfo.background_path(base_path)` build these paths. `MapInfo.background_path` returns `None` when the map has no background. `map_exists(name, base_path)` checks whether the map file is present.

## Servers

```python
import asyncio
from smognet.mapfiles import MapInfo
from smognet.server import GameServer, LobbyServer

async def serve():
    lobby_server = LobbyServer("127.0.0.1", 0, MapInfo("default"))
    await lobby_server.start()
    ...                                   # wait while players join
    lobby = await lobby_server.get_lobby()
    game = GameServer(lobby, slot_duration=0.0023, slots_stored=16)
    await game.run()
    ...                                   # the game runs
    game.stop()
```

### Lobby server

For each connection, `LobbyServer`:

1. expects a `SetName` message;
2. answers with `SetId` and `SetMap`;
3. if the client then sends `RequestMap`, sends the map file, its textures and its background as `CreateFile` messages.

Ids are given out in the order that connections arrive. After `start()`, the `port` property gives the port the server is bound to.

`get_lobby()` stops accepting connections and returns the players whose handshake succeeded.

### Game server

`GameServer.run()` sends every player `SetPlayers` and `StartGame`. It then starts background tasks that:

- read raw packets from each player;
- collect them in a `TimedQueue`;
- send every player the serialized slots each time `slot_duration × slots_stored` has passed.

`stop()` cancels those tasks.

## Lobby console helpers

- `parse_swap("swap 1 2")` returns `(1, 2)`. It raises `ValueError` for any other input, and for ids above 255.
- `swap_ids` exchanges two players' ids and sends each of them the new `SetId`.
- `format_teams` lists each team's spawn indices. Beside each index it shows the name of the player whose id matches that index, or `______` if there is no such player.
- `display_players` prints the same listing.

## What the package does not do

- It has no command-line program. There is no interactive operator loop to start a lobby and begin a game. The console helpers are building blocks for such a loop.
- It does not read or write the contents of `map.smog`. `MapInfo` describes only a map's name, spawns, texture count and background flag. The lobby server sends the map file as opaque bytes.
- It has no physics simulation, no rendering and no map editor.

## Running the tests

Install the `test` extra, then run `pytest` from the project directory.