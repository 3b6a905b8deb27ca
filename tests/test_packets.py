from unittest import mock

import pytest

from smognet.packets import (
    PACKET_SIZE,
    Dash,
    Fire,
    GamePacket,
    IndexedPacket,
    Motor,
    Muzzle,
    NoPacket,
    ResetMuzzle,
    Spawn,
    Thrust,
    TimedQueue,
    deserialize_queue,
    serialize_queue,
)


class FakeClock:
    def __init__(self, now=0):
        self.now = now

    def __call__(self):
        return self.now


CONVERSION_CASES = [
    Spawn((10.1, 32.2)),
    Motor(69000, 53.2),
    Muzzle((10.9, 32.0)),
    Fire(10),
    Thrust(3.0, -1.0),
    ResetMuzzle(),
    Dash(210.0),
]


@pytest.mark.parametrize("packet", CONVERSION_CASES)
def test_conversion(packet):
    assert GamePacket.from_bytes(packet.to_bytes()) == packet


@pytest.mark.parametrize("packet", CONVERSION_CASES)
def test_packet_size(packet):
    data = packet.to_bytes()
    assert len(data) == PACKET_SIZE
    assert GamePacket.from_bytes(data).to_bytes() == data


@pytest.mark.parametrize(
    "packet, kind",
    [
        (Spawn((1.0, 2.0)), 1),
        (Motor(1, 2.0), 2),
        (Muzzle((1.0, 2.0)), 3),
        (Fire(1), 4),
        (Thrust(1.0, 2.0), 5),
        (Dash(1.0), 6),
        (ResetMuzzle(), 7),
    ],
)
def test_kind_byte(packet, kind):
    assert packet.to_bytes()[0] == kind


def test_fire_layout():
    assert Fire(10).to_bytes() == bytes([4, 10, 0, 0, 0, 0, 0, 0, 0])


def test_reset_muzzle_layout():
    assert ResetMuzzle().to_bytes() == bytes([7] + [0] * 8)


def test_none_is_all_zeros():
    assert NoPacket().to_bytes() == bytes(9)
    assert GamePacket.from_bytes(bytes(9)) == NoPacket()


def test_damaged_packet_decodes_to_none():
    assert GamePacket.from_bytes(bytes([42]) + bytes(8)) == NoPacket()


def test_wrong_length_rejected():
    with pytest.raises(ValueError):
        GamePacket.from_bytes(bytes(8))


def test_motor_index_out_of_range():
    with pytest.raises(ValueError):
        Motor(2**32, 1.0)


def test_fire_out_of_range():
    with pytest.raises(ValueError):
        Fire(256)


def test_indexed_packet_round_trip():
    packet = IndexedPacket(3, Motor(69000, 53.2))
    data = packet.to_bytes()
    assert len(data) == PACKET_SIZE + 1
    assert data[0] == 3
    assert IndexedPacket.from_bytes(data) == packet


def test_indexed_packet_raw_contents():
    raw = bytes(range(9))
    packet = IndexedPacket(5, raw)
    assert packet.to_bytes() == bytes([5]) + raw
    assert IndexedPacket.from_bytes(packet.to_bytes(), bytes) == packet


def test_serialize_queue_layout():
    slots = [[IndexedPacket(0, Fire(1)), IndexedPacket(1, Dash(2.0))], [], [IndexedPacket(2, ResetMuzzle())]]
    data = serialize_queue(slots)
    assert data[0] == 2
    assert data[21] == 0
    assert data[22] == 1
    assert len(data) == 1 + 20 + 1 + 1 + 10


def test_queue_round_trip():
    slots = [
        [IndexedPacket(0, Spawn((10.1, 32.2))), IndexedPacket(1, Fire(10))],
        [],
        [IndexedPacket(7, Thrust(3.0, -1.0))],
    ]
    decoded, rest = deserialize_queue(serialize_queue(slots))
    assert decoded == slots
    assert rest == b""


def test_deserialize_keeps_incomplete_tail():
    complete = serialize_queue([[IndexedPacket(0, Fire(1))]])
    tail = serialize_queue([[IndexedPacket(1, Dash(1.0)), IndexedPacket(2, Dash(2.0))]])[:7]
    decoded, rest = deserialize_queue(complete + tail)
    assert decoded == [[IndexedPacket(0, Fire(1))]]
    assert rest == tail


def test_deserialize_resumes_with_tail():
    slots = [[IndexedPacket(4, Motor(1, 1.0))], [IndexedPacket(5, Motor(2, 2.0))]]
    data = serialize_queue(slots)
    first, rest = deserialize_queue(data[:15])
    second, rest2 = deserialize_queue(rest + data[15:])
    assert first + second == slots
    assert rest2 == b""


def test_deserialize_raw_packets():
    raw = bytes(range(4))
    slots = [[IndexedPacket(1, raw)]]
    decoded, rest = deserialize_queue(serialize_queue(slots), 4, bytes)
    assert decoded == slots
    assert rest == b""


def test_serialize_queue_rejects_large_slot():
    with pytest.raises(ValueError):
        serialize_queue([[IndexedPacket(0, Fire(0))] * 256])


def test_timed_queue():
    ms = 1_000_000
    clock = FakeClock()
    with mock.patch("time.monotonic_ns", clock):
        q = TimedQueue(0.001)
        q.push(1)
        q.push(2)
        clock.now += ms + 50_000

        q.push(3)
        q.push(4)
        q.push(5)
        clock.now += 2 * ms + 50_000

        q.push(6)

        assert q.take(6) == [[1, 2], [3, 4, 5], [], [6], [], []]


def test_timed_queue_take_resets_time():
    clock = FakeClock()
    with mock.patch("time.monotonic_ns", clock):
        q = TimedQueue(0.001)
        clock.now = 5_000_000
        q.push("a")
        assert len(q) == 6
        assert q.take(2) == [[], []]
        assert len(q) == 4
        q.take(10)
        assert len(q) == 0
        q.push("b")
        assert q.take(1) == [["b"]]


def test_time_since_take():
    clock = FakeClock()
    with mock.patch("time.monotonic_ns", clock):
        q = TimedQueue(0.5)
        clock.now = 250_000_000
        assert q.time_since_take() == pytest.approx(0.25)
        q.take(1)
        assert q.time_since_take() == 0


def test_timed_queue_rejects_zero_delta():
    with pytest.raises(ValueError):
        TimedQueue(0)