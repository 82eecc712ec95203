"""Runtime loader for the definition tables shipped beside this module.

Every table is parsed once and cached; lookups by id return None for unknown ids
so callers can treat a dangling reference as an empty slot.
"""
from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from srwlite.core.errors import DataLoadError
from srwlite.core.logging import logger
from srwlite.core.paths import DATA
from srwlite.core.types import SpiritEffect, SlotType, TerrainType
from .definitions import (
    SpiritCommand, TerrainDefinition, EquipmentDefinition, RobotDefinition, ScenarioDefinition, STAT_KEYS,
)

PLAYER_ROBOT_IDS: Tuple[str, ...] = ("rx-78-2-gundam", "fa-010s-fazz", "msn-00100-hyakushiki")
STARTING_EQUIPMENT_IDS: Tuple[str, ...] = ("eq_standard_booster", "eq_beam_rifle_std", "eq_standard_armor")

def _read(name: str) -> List[Dict[str, Any]]:
    path: Path = DATA / name
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise DataLoadError(str(path), str(e)) from e
    if not isinstance(raw, list):
        raise DataLoadError(str(path), "expected a list of records")
    return raw

@lru_cache(maxsize=None)
def spirit_table() -> Dict[str, SpiritCommand]:
    out: Dict[str, SpiritCommand] = {}
    for r in _read("spirits.json"):
        try:
            out[r["id"]] = SpiritCommand(r["id"], r["name"], int(r["cost"]), SpiritEffect(r["effect"]), r.get("description", ""))
        except (KeyError, ValueError) as e:
            raise DataLoadError("spirits.json", f"bad record {r!r}: {e}") from e
    return out

@lru_cache(maxsize=None)
def terrain_table() -> Dict[TerrainType, TerrainDefinition]:
    out: Dict[TerrainType, TerrainDefinition] = {}
    for r in _read("terrain.json"):
        try:
            tid = TerrainType(r["id"])
            out[tid] = TerrainDefinition(tid, r["name"], float(r["defense_bonus_percent"]), r.get("description", ""))
        except (KeyError, ValueError) as e:
            raise DataLoadError("terrain.json", f"bad record {r!r}: {e}") from e
    missing = [t for t in TerrainType if t not in out]
    if missing:
        raise DataLoadError("terrain.json", f"missing terrain {missing}")
    return out

@lru_cache(maxsize=None)
def equipment_table() -> Dict[str, EquipmentDefinition]:
    out: Dict[str, EquipmentDefinition] = {}
    for r in _read("equipment.json"):
        try:
            out[r["id"]] = EquipmentDefinition(
                id=r["id"],
                name=r["name"],
                slot=SlotType(r["slot"]),
                base_boost={k: int(v) for k, v in r["base_boost"].items()},
                per_level={k: int(v) for k, v in r.get("per_level", {}).items()},
                max_level=int(r["max_level"]),
                base_upgrade_cost=int(r["base_upgrade_cost"]),
                upgrade_cost_increase=int(r["upgrade_cost_increase"]),
                description=r.get("description", ""),
            )
        except (KeyError, ValueError, AttributeError) as e:
            raise DataLoadError("equipment.json", f"bad record {r!r}: {e}") from e
    return out

@lru_cache(maxsize=None)
def robot_table() -> Dict[str, RobotDefinition]:
    out: Dict[str, RobotDefinition] = {}
    for r in _read("robots.json"):
        try:
            stats = {k: int(r["stats"][k]) for k in STAT_KEYS}
            out[r["id"]] = RobotDefinition(
                id=r["id"],
                name=r["name"],
                pilot=r.get("pilot", ""),
                stats=stats,
                spirits=tuple(r.get("spirits", [])),
                default_equipment={SlotType(k): v for k, v in r.get("default_equipment", {}).items()},
            )
        except (KeyError, ValueError, AttributeError) as e:
            raise DataLoadError("robots.json", f"bad record {r!r}: {e}") from e
    return out

@lru_cache(maxsize=None)
def scenario_list() -> Tuple[ScenarioDefinition, ...]:
    robots = robot_table()
    out: List[ScenarioDefinition] = []
    for r in _read("scenarios.json"):
        enemies = tuple(r.get("enemies", []))
        unknown = [e for e in enemies if e not in robots]
        if unknown:
            raise DataLoadError("scenarios.json", f"{r.get('id')} references unknown robots {unknown}")
        out.append(ScenarioDefinition(r["id"], r["title"], r.get("description", ""), enemies))
    logger.debug("ScenariosLoaded", count=len(out))
    return tuple(out)

def get_robot(robot_id: str) -> Optional[RobotDefinition]:
    return robot_table().get(robot_id)

def get_equipment(equipment_id: str) -> Optional[EquipmentDefinition]:
    return equipment_table().get(equipment_id)

def get_spirit(spirit_id: str) -> Optional[SpiritCommand]:
    return spirit_table().get(spirit_id)

def terrain_bonus(terrain: TerrainType) -> float:
    return terrain_table()[terrain].defense_bonus_percent

def player_robots() -> List[RobotDefinition]:
    table = robot_table()
    return [table[rid] for rid in PLAYER_ROBOT_IDS]

__all__ = [
    "spirit_table","terrain_table","equipment_table","robot_table","scenario_list",
    "get_robot","get_equipment","get_spirit","terrain_bonus","player_robots",
    "PLAYER_ROBOT_IDS","STARTING_EQUIPMENT_IDS",
]
