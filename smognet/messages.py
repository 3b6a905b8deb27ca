"""Variable-size control messages exchanged before and around a game."""

from __future__ import annotations

import asyncio
import struct
from dataclasses import dataclass
from typing import ClassVar, TypeVar

_LENGTH = struct.Struct(">I")

M = TypeVar("M", bound="Message")


def _varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _u8(value: int) -> bytes:
    if not 0 <= value <= 0xFF:
        raise ValueError(f"value out of byte range: {value}")
    return bytes([value])


def _string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return _varint(len(raw)) + raw


def _byte_seq(value: bytes) -> bytes:
    return _varint(len(value)) + bytes(value)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ValueError("unexpected end of message")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def varint(self) -> int:
        value = 0
        for shift in range(0, 70, 7):
            byte = self.u8()
            value |= (byte & 0x7F) << shift
            if not byte & 0x80:
                return value
        raise ValueError("varint too long")

    def string(self) -> str:
        return self.take(self.varint()).decode("utf-8")

    def byte_seq(self) -> bytes:
        return self.take(self.varint())


class Message:
    """A tagged message: a variant index followed by the variant's fields."""

    tag: ClassVar[int]
    _variants: ClassVar[dict[int, type[Message]]] = {}

    def __init_subclass__(cls, tag: int | None = None, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if tag is None:
            cls._variants = {}
        else:
            cls.tag = tag
            cls._variants[tag] = cls

    def _encode_payload(self) -> bytes:
        return b""

    @classmethod
    def _decode_payload(cls: type[M], reader: _Reader) -> M:
        return cls()

    def to_bytes(self) -> bytes:
        """Encode the message without a length prefix."""
        return _varint(self.tag) + self._encode_payload()

    @classmethod
    def from_bytes(cls: type[M], data: bytes) -> M:
        """Decode a message of this type; raises ValueError on bad input."""
        reader = _Reader(data)
        tag = reader.varint()
        variant = cls._variants.get(tag)
        if variant is None or not issubclass(variant, cls):
            raise ValueError(f"unknown {cls.__name__} variant {tag}")
        return variant._decode_payload(reader)

    def as_packet(self) -> bytes:
        """Encode the message with a four-byte big-endian length prefix."""
        body = self.to_bytes()
        return _LENGTH.pack(len(body)) + body

    @classmethod
    def from_packet(cls: type[M], data: bytes) -> M:
        """Decode a length-prefixed message."""
        if len(data) < _LENGTH.size:
            raise ValueError("packet shorter than its length prefix")
        (length,) = _LENGTH.unpack(data[: _LENGTH.size])
        body = data[_LENGTH.size : _LENGTH.size + length]
        if len(body) < length:
            raise ValueError("packet shorter than its declared length")
        return cls.from_bytes(body)


class ClientPacket(Message):
    """Messages sent by a client to the server."""


@dataclass(frozen=True)
class SetName(ClientPacket, tag=0):
    name: str

    def _encode_payload(self) -> bytes:
        return _string(self.name)

    @classmethod
    def _decode_payload(cls, reader: _Reader) -> SetName:
        return cls(reader.string())


@dataclass(frozen=True)
class RequestMap(ClientPacket, tag=1):
    pass


@dataclass(frozen=True)
class ClientOk(ClientPacket, tag=2):
    pass


class ServerPacket(Message):
    """Messages sent by the server to a client."""


@dataclass(frozen=True)
class SetMap(ServerPacket, tag=0):
    name: str

    def _encode_payload(self) -> bytes:
        return _string(self.name)

    @classmethod
    def _decode_payload(cls, reader: _Reader) -> SetMap:
        return cls(reader.string())


@dataclass(frozen=True)
class CreateFile(ServerPacket, tag=1):
    name: str
    contents: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "contents", bytes(self.contents))

    def _encode_payload(self) -> bytes:
        return _string(self.name) + _byte_seq(self.contents)

    @classmethod
    def _decode_payload(cls, reader: _Reader) -> CreateFile:
        name = reader.string()
        return cls(name, reader.byte_seq())


@dataclass(frozen=True)
class SetPlayers(ServerPacket, tag=2):
    players: tuple[tuple[int, str], ...]

    def __post_init__(self) -> None:
        players = tuple((int(pid), str(name)) for pid, name in self.players)
        for pid, _ in players:
            _u8(pid)
        object.__setattr__(self, "players", players)

    def _encode_payload(self) -> bytes:
        parts = [_varint(len(self.players))]
        parts.extend(_u8(pid) + _string(name) for pid, name in self.players)
        return b"".join(parts)

    @classmethod
    def _decode_payload(cls, reader: _Reader) -> SetPlayers:
        count = reader.varint()
        players = []
        for _ in range(count):
            pid = reader.u8()
            players.append((pid, reader.string()))
        return cls(tuple(players))


@dataclass(frozen=True)
class SetId(ServerPacket, tag=3):
    id: int

    def __post_init__(self) -> None:
        _u8(self.id)

    def _encode_payload(self) -> bytes:
        return _u8(self.id)

    @classmethod
    def _decode_payload(cls, reader: _Reader) -> SetId:
        return cls(reader.u8())


@dataclass(frozen=True)
class StartGame(ServerPacket, tag=4):
    pass


async def read_packet(reader: asyncio.StreamReader, packet_type: type[M]) -> M:
    """Read one length-prefixed message of ``packet_type`` from a stream."""
    header = await reader.readexactly(_LENGTH.size)
    (length,) = _LENGTH.unpack(header)
    body = await reader.readexactly(length)
    return packet_type.from_bytes(body)


async def write_packet(writer: asyncio.StreamWriter, packet: Message) -> None:
    """Write one length-prefixed message to a stream and wait for it to drain."""
    writer.write(packet.as_packet())
    await writer.drain()