"""Map descriptions and the on-disk layout of map directories."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

ASSETS_PATH = "assets"
RELATIVE_MAPS_PATH = "assets/maps"
ASSETS_MAPS_PATH = "maps/"
MAP_FILE = "map.smog"
BACKGROUND_FILE = "background.png"

MAX_TEAMS = 8


@dataclass(frozen=True)
class Spawn:
    """A spawn point for a team, placed at a position in world coordinates."""

    pos: tuple[float, float]
    team: int


@dataclass
class MapInfo:
    """The parts of a map that describe its files and spawn points."""

    name: str
    spawns: list[Spawn] = field(default_factory=list)
    textures_num: int = 0
    background: bool = False

    def texture_paths(self, base_path: PathLike) -> list[Path]:
        """Paths of this map's texture images under ``base_path``."""
        return texture_paths(self.name, self.textures_num, base_path)

    def background_path(self, base_path: PathLike) -> Path | None:
        """Path of this map's background image, or None if it has none."""
        return background_path(self.name, self.background, base_path)


def texture_paths(name: str, num: int, base_path: PathLike) -> list[Path]:
    """Paths ``base_path/name/texture_<i>.png`` for ``i`` in ``range(num)``."""
    directory = Path(base_path) / name
    return [directory / f"texture_{i}.png" for i in range(num)]


def background_path(name: str, background: bool, base_path: PathLike) -> Path | None:
    """Path of the background image of map ``name``, or None without one."""
    if not background:
        return None
    return Path(base_path) / name / BACKGROUND_FILE


def map_exists(name: str, base_path: PathLike) -> bool:
    """Whether the map file of map ``name`` exists under ``base_path``."""
    return (Path(base_path) / name / MAP_FILE).exists()