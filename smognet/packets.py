"""Fixed-size game packets, indexed packets and the timed broadcast queue."""

from __future__ import annotations

import logging
import struct
import time
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import ClassVar, Union

logger = logging.getLogger(__name__)

PACKET_SIZE = 9

_PAYLOAD_SIZE = PACKET_SIZE - 1
_F32 = struct.Struct(">f")
_TWO_F32 = struct.Struct(">ff")
_U32_F32 = struct.Struct(">If")


def _f32(value: float) -> float:
    """Round ``value`` to the nearest single-precision float."""
    return _F32.unpack(_F32.pack(value))[0]


def _pad(payload: bytes) -> bytes:
    return payload.ljust(_PAYLOAD_SIZE, b"\x00")


class GamePacket:
    """A game packet of exactly ``PACKET_SIZE`` bytes: a kind byte and a payload."""

    kind: ClassVar[int] = 0
    _kinds: ClassVar[dict[int, type[GamePacket]]] = {}

    def __init_subclass__(cls, kind: int | None = None, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        if kind is not None:
            cls.kind = kind
            GamePacket._kinds[kind] = cls

    def _payload(self) -> bytes:
        return b""

    @classmethod
    def _decode(cls, payload: bytes) -> GamePacket:
        return cls()

    def to_bytes(self) -> bytes:
        """Encode the packet as ``PACKET_SIZE`` bytes."""
        return bytes([self.kind]) + _pad(self._payload())

    @staticmethod
    def from_bytes(data: bytes) -> GamePacket:
        """Decode a packet; an unknown kind byte yields ``NoPacket``."""
        if len(data) != PACKET_SIZE:
            raise ValueError(f"game packet must be {PACKET_SIZE} bytes, got {len(data)}")
        data = bytes(data)
        packet_type = GamePacket._kinds.get(data[0])
        if packet_type is None or packet_type is NoPacket:
            if data[0] != NoPacket.kind:
                logger.error("receive damaged packet from server")
            return NoPacket()
        return packet_type._decode(data[1:])


@dataclass(frozen=True)
class NoPacket(GamePacket, kind=0):
    """The empty packet, all zero bytes."""


@dataclass(frozen=True)
class Spawn(GamePacket, kind=1):
    """Spawn the player's ship at a position."""

    pos: tuple[float, float]

    def __post_init__(self) -> None:
        x, y = self.pos
        object.__setattr__(self, "pos", (_f32(x), _f32(y)))

    def _payload(self) -> bytes:
        return _TWO_F32.pack(*self.pos)

    @classmethod
    def _decode(cls, payload: bytes) -> Spawn:
        return cls(_TWO_F32.unpack(payload[:8]))


@dataclass(frozen=True)
class Motor(GamePacket, kind=2):
    """Set the acceleration of the motor with the given index."""

    index: int
    acceleration: float

    def __post_init__(self) -> None:
        if not 0 <= self.index <= 0xFFFFFFFF:
            raise ValueError(f"motor index out of range: {self.index}")
        object.__setattr__(self, "acceleration", _f32(self.acceleration))

    def _payload(self) -> bytes:
        return _U32_F32.pack(self.index, self.acceleration)

    @classmethod
    def _decode(cls, payload: bytes) -> Motor:
        index, acceleration = _U32_F32.unpack(payload[:8])
        return cls(index, acceleration)


@dataclass(frozen=True)
class Muzzle(GamePacket, kind=3):
    """Aim the muzzle at a position."""

    pos: tuple[float, float]

    def __post_init__(self) -> None:
        x, y = self.pos
        object.__setattr__(self, "pos", (_f32(x), _f32(y)))

    def _payload(self) -> bytes:
        return _TWO_F32.pack(*self.pos)

    @classmethod
    def _decode(cls, payload: bytes) -> Muzzle:
        return cls(_TWO_F32.unpack(payload[:8]))


@dataclass(frozen=True)
class Fire(GamePacket, kind=4):
    """Fire a bullet of the given kind."""

    bullet: int

    def __post_init__(self) -> None:
        if not 0 <= self.bullet <= 0xFF:
            raise ValueError(f"bullet kind out of range: {self.bullet}")

    def _payload(self) -> bytes:
        return bytes([self.bullet])

    @classmethod
    def _decode(cls, payload: bytes) -> Fire:
        return cls(payload[0])


@dataclass(frozen=True)
class Thrust(GamePacket, kind=5):
    """Set the left and right thrust."""

    left: float
    right: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "left", _f32(self.left))
        object.__setattr__(self, "right", _f32(self.right))

    def _payload(self) -> bytes:
        return _TWO_F32.pack(self.left, self.right)

    @classmethod
    def _decode(cls, payload: bytes) -> Thrust:
        left, right = _TWO_F32.unpack(payload[:8])
        return cls(left, right)


@dataclass(frozen=True)
class Dash(GamePacket, kind=6):
    """Dash with the given coefficient."""

    coeff: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "coeff", _f32(self.coeff))

    def _payload(self) -> bytes:
        return _F32.pack(self.coeff)

    @classmethod
    def _decode(cls, payload: bytes) -> Dash:
        return cls(_F32.unpack(payload[:4])[0])


@dataclass(frozen=True)
class ResetMuzzle(GamePacket, kind=7):
    """Return the muzzle to its resting position."""


Contents = Union[GamePacket, bytes]
Decoder = Callable[[bytes], Contents]


@dataclass(frozen=True)
class IndexedPacket:
    """A packet tagged with the id of the player that sent it."""

    id: int
    contents: Contents

    def to_bytes(self) -> bytes:
        """The id byte followed by the encoded contents."""
        if not 0 <= self.id <= 0xFF:
            raise ValueError(f"packet id out of range: {self.id}")
        if isinstance(self.contents, (bytes, bytearray, memoryview)):
            payload = bytes(self.contents)
        else:
            payload = self.contents.to_bytes()
        return bytes([self.id]) + payload

    @staticmethod
    def from_bytes(data: bytes, decode: Decoder = GamePacket.from_bytes) -> IndexedPacket:
        """Split off the id byte and decode the rest with ``decode``."""
        if not data:
            raise ValueError("indexed packet is empty")
        return IndexedPacket(data[0], decode(bytes(data[1:])))


def serialize_queue(slots: Iterable[Sequence[IndexedPacket]]) -> bytes:
    """Encode each slot as a count byte followed by its packets."""
    out = bytearray()
    for slot in slots:
        if len(slot) > 0xFF:
            raise ValueError(f"a slot holds at most 255 packets, got {len(slot)}")
        out.append(len(slot))
        for packet in slot:
            out += packet.to_bytes()
    return bytes(out)


def deserialize_queue(
    buffer: bytes,
    size: int = PACKET_SIZE,
    decode: Decoder = GamePacket.from_bytes,
) -> tuple[list[list[IndexedPacket]], bytes]:
    """Decode complete slots from ``buffer``.

    Returns the slots and the bytes of a trailing incomplete slot, which
    should be prepended to the next chunk of data.
    """
    data = bytes(buffer)
    step = size + 1
    slots: list[list[IndexedPacket]] = []
    pos = 0
    while pos < len(data):
        count = data[pos]
        start = pos + 1
        end = start + count * step
        if end > len(data):
            return slots, data[pos:]
        slots.append(
            [
                IndexedPacket.from_bytes(data[offset : offset + step], decode)
                for offset in range(start, end, step)
            ]
        )
        pos = end
    return slots, b""


class TimedQueue:
    """Groups pushed elements into time slots of length ``delta`` seconds.

    Slot 0 starts at the last ``take`` (or at creation).
    """

    def __init__(self, delta: float) -> None:
        delta_ns = round(delta * 1_000_000_000)
        if delta_ns <= 0:
            raise ValueError("slot duration must be positive")
        self._delta_ns = delta_ns
        self._time = time.monotonic_ns()
        self.queue: deque[list] = deque([[]])

    def push(self, element: object) -> None:
        """Add ``element`` to the slot of the current moment."""
        if not self.queue:
            self.queue.append([])
        index = (time.monotonic_ns() - self._time) // self._delta_ns
        missing = max(index, len(self.queue) - 1) - (len(self.queue) - 1)
        self.queue.extend([] for _ in range(missing))
        self.queue[-1].append(element)

    def take(self, num: int) -> list[list]:
        """Remove and return the first ``num`` slots, padded with empty ones."""
        self._time = time.monotonic_ns()
        head = [self.queue.popleft() for _ in range(min(num, len(self.queue)))]
        head.extend([] for _ in range(num - len(head)))
        return head

    def __len__(self) -> int:
        return len(self.queue)

    def time_since_take(self) -> float:
        """Seconds elapsed since the last ``take``."""
        return (time.monotonic_ns() - self._time) / 1_000_000_000