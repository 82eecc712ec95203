"""Immutable definition records (robots, equipment, spirit commands, terrain, scenarios)."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Tuple, Optional

from srwlite.core.types import SpiritEffect, SlotType, TerrainType

STAT_KEYS: Tuple[str, ...] = ("hp", "en", "sp", "attack", "defense", "mobility")

@dataclass(frozen=True)
class SpiritCommand:
    id: str
    name: str
    cost: int
    effect: SpiritEffect
    description: str = ""

@dataclass(frozen=True)
class TerrainDefinition:
    id: TerrainType
    name: str
    defense_bonus_percent: float
    description: str = ""

@dataclass(frozen=True)
class EquipmentDefinition:
    id: str
    name: str
    slot: SlotType
    base_boost: Dict[str, int]
    per_level: Dict[str, int]
    max_level: int
    base_upgrade_cost: int
    upgrade_cost_increase: int
    description: str = ""

    def boost_at(self, level: int) -> Dict[str, int]:
        """Bonus granted at ``level``: the level-1 boost plus the per-level step for each level above 1."""
        steps = max(0, int(level) - 1)
        out = dict(self.base_boost)
        for k, v in self.per_level.items():
            out[k] = out.get(k, 0) + v * steps
        return out

    def upgrade_cost(self, level: int) -> int:
        return self.base_upgrade_cost + self.upgrade_cost_increase * (max(1, int(level)) - 1)

@dataclass(frozen=True)
class RobotDefinition:
    id: str
    name: str
    pilot: str
    stats: Dict[str, int]
    spirits: Tuple[str, ...] = ()
    default_equipment: Dict[SlotType, str] = field(default_factory=dict)

@dataclass(frozen=True)
class ScenarioDefinition:
    id: str
    title: str
    description: str
    enemies: Tuple[str, ...]

__all__ = [
    "SpiritCommand","TerrainDefinition","EquipmentDefinition","RobotDefinition","ScenarioDefinition","STAT_KEYS",
]
