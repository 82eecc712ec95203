"""Cosmetic map positions and the terrain zone they fall in.

Positions are percentages of the battle map (0..100 on both axes). Enemies deploy
across the top band, the player along the bottom band.
"""
from __future__ import annotations
import random
from typing import Protocol, Tuple, Sequence, Optional

from srwlite.core.types import TerrainType

ASTEROID_LIMIT = 33.33
COLONY_LIMIT = 66.66

def terrain_for(y: float) -> TerrainType:
    if y < ASTEROID_LIMIT:
        return TerrainType.ASTEROID_FIELD
    if y < COLONY_LIMIT:
        return TerrainType.COLONY_INTERIOR
    return TerrainType.SPACE

class PositionGenerator(Protocol):
    def place(self, is_player: bool) -> Tuple[float, float]: ...

class RandomPositions:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def place(self, is_player: bool) -> Tuple[float, float]:
        x = 10 + self.rng.random() * 80
        if is_player:
            y = COLONY_LIMIT + self.rng.random() * (100 - COLONY_LIMIT - 5)
        else:
            y = 5 + self.rng.random() * (ASTEROID_LIMIT - 10)
        return (round(x, 2), round(y, 2))

class FixedPositions:
    """Cycles through preset coordinates; used by tests and replays."""
    def __init__(self, player: Sequence[Tuple[float, float]] = ((50.0, 80.0),),
                 enemy: Sequence[Tuple[float, float]] = ((50.0, 20.0),)):
        self._player = list(player)
        self._enemy = list(enemy)
        self._pi = 0
        self._ei = 0

    def place(self, is_player: bool) -> Tuple[float, float]:
        if is_player:
            pos = self._player[self._pi % len(self._player)]
            self._pi += 1
        else:
            pos = self._enemy[self._ei % len(self._enemy)]
            self._ei += 1
        return pos

__all__ = ["terrain_for","PositionGenerator","RandomPositions","FixedPositions","ASTEROID_LIMIT","COLONY_LIMIT"]
