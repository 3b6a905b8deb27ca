import pytest

from smognet.console import display_players, format_teams, parse_swap, swap_ids
from smognet.mapfiles import Spawn
from smognet.messages import SetId
from smognet.server import Player


class _RecordingWriter:
    def __init__(self):
        self.data = b""

    def write(self, data):
        self.data += data

    async def drain(self):
        pass

    def get_extra_info(self, name):
        return None


def _player(player_id, name):
    return Player(player_id, name, None, _RecordingWriter())


def test_parse_swap_reads_two_ids():
    assert parse_swap("swap 1 2\n") == (1, 2)


@pytest.mark.parametrize(
    "line", ["swap 1", "swap 1 300", "teams", "swap a b", "swap 1 2 3", "swap -1 2"]
)
def test_parse_swap_rejects(line):
    with pytest.raises(ValueError):
        parse_swap(line)


@pytest.mark.asyncio
async def test_swap_ids_exchanges_and_notifies():
    alice, bob, carol = _player(0, "alice"), _player(1, "bob"), _player(2, "carol")
    await swap_ids([alice, bob, carol], 0, 1)
    assert (alice.id, bob.id, carol.id) == (1, 0, 2)
    assert alice.writer.data == SetId(1).as_packet()
    assert bob.writer.data == SetId(0).as_packet()
    assert carol.writer.data == b""


@pytest.mark.asyncio
async def test_swap_ids_to_free_slot():
    alice = _player(0, "alice")
    await swap_ids([alice], 0, 3)
    assert alice.id == 3
    assert alice.writer.data == SetId(3).as_packet()


def _layout():
    spawns = [Spawn((0.0, 0.0), 1), Spawn((1.0, 1.0), 0), Spawn((2.0, 2.0), 1)]
    players = [_player(0, "alice"), _player(2, "bob")]
    return players, spawns


def test_format_teams_groups_by_team():
    players, spawns = _layout()
    assert format_teams(players, spawns) == (
        "Displaying teams:\n\n"
        "Team #0:\n1: ______\n\n\n"
        "Team #1:\n0: alice\n2: bob\n\n\n"
    )


def test_format_teams_without_spawns():
    assert format_teams([_player(0, "alice")], []) == "Displaying teams:\n\n"


def test_display_players_prints_format(capsys):
    players, spawns = _layout()
    display_players(players, spawns)
    assert capsys.readouterr().out == format_teams(players, spawns)