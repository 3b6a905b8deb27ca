"""Operator commands for arranging players in the lobby."""

from __future__ import annotations

import contextlib
from collections.abc import Iterable, Sequence

from .mapfiles import Spawn
from .messages import SetId, write_packet
from .server import Player


def parse_swap(line: str) -> tuple[int, int]:
    """Parse ``swap <i> <j>`` with two player ids in 0..255."""
    parts = line.split()
    if len(parts) != 3 or parts[0] != "swap":
        raise ValueError(f"not a swap command: {line!r}")
    ids = []
    for token in parts[1:]:
        if not token.isdigit():
            raise ValueError(f"player id is not a number: {token!r}")
        value = int(token)
        if value > 0xFF:
            raise ValueError(f"player id out of range: {value}")
        ids.append(value)
    return ids[0], ids[1]


async def swap_ids(players: Iterable[Player], i: int, j: int) -> None:
    """Exchange ids ``i`` and ``j`` between players and tell them their new ids."""
    for player in players:
        if player.id == i:
            new_id = j
        elif player.id == j:
            new_id = i
        else:
            continue
        player.id = new_id
        with contextlib.suppress(ConnectionError, OSError):
            await write_packet(player.writer, SetId(new_id))


def format_teams(players: Iterable[Player], spawns: Sequence[Spawn]) -> str:
    """Describe which player occupies each spawn, grouped by team."""
    teams: dict[int, list[int]] = {}
    for index, spawn in enumerate(spawns):
        teams.setdefault(spawn.team, []).append(index)
    names = {player.id: player.name for player in players}

    lines = ["Displaying teams:\n\n"]
    for team in sorted(teams):
        lines.append(f"Team #{team}:\n")
        for spawn_id in teams[team]:
            lines.append(f"{spawn_id}: {names.get(spawn_id, '______')}\n")
        lines.append("\n\n")
    return "".join(lines)


def display_players(players: Iterable[Player], spawns: Sequence[Spawn]) -> None:
    """Print the team arrangement."""
    print(format_teams(players, spawns), end="")