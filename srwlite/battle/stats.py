"""Stat engine: effective stats, resource pool reconciliation, NG+ scaling.

Pure helpers. Functions that take a unit mutate only the unit passed in.
"""
from __future__ import annotations
from typing import Mapping, Optional, Dict

from srwlite.core.rng import round_half_up
from srwlite.data.definitions import RobotDefinition
from srwlite.data.loader import get_equipment
from .models import StatBlock, EquipmentInstance, UnitInstance
from srwlite.core.types import SlotType

NG_PLUS_STAT_MULTIPLIER = 0.10
LEVEL_UP_INCREMENTS = StatBlock(hp=500, en=10, sp=5, attack=50, defense=30, mobility=5)

Inventory = Mapping[str, EquipmentInstance]

def equipment_bonus(instance: EquipmentInstance) -> StatBlock:
    d = get_equipment(instance.definition_id)
    if d is None:
        return StatBlock()
    return StatBlock.from_dict(d.boost_at(instance.level))

def compute_effective_stats(base: StatBlock, equipped: Mapping[SlotType, Optional[str]], inventory: Inventory) -> StatBlock:
    """Base stats plus the bonus of every equipped instance at its current level.

    Dangling instance ids and unknown definitions contribute nothing.
    """
    total = base
    for instance_id in equipped.values():
        if not instance_id:
            continue
        inst = inventory.get(instance_id)
        if inst is None:
            continue
        total = total.plus(equipment_bonus(inst))
    return total

def apply_ng_plus_scaling(base: StatBlock, cycle: int) -> StatBlock:
    """Scale hp/attack/defense by ``1 + cycle * 0.10`` (enemy units only; cycle 0 is a no-op)."""
    if cycle <= 0:
        return base
    m = 1 + cycle * NG_PLUS_STAT_MULTIPLIER
    return StatBlock(
        hp=round_half_up(base.hp * m),
        en=base.en,
        sp=base.sp,
        attack=round_half_up(base.attack * m),
        defense=round_half_up(base.defense * m),
        mobility=base.mobility,
    )

def derive_base_stats(definition: RobotDefinition, level: int, *, is_player: bool, cycle: int = 0) -> StatBlock:
    base = StatBlock.from_dict(definition.stats).plus(LEVEL_UP_INCREMENTS.scaled(max(0, level - 1)))
    if is_player:
        return base
    return apply_ng_plus_scaling(base, cycle)

def clamp_pools(unit: UnitInstance) -> None:
    eff = unit.effective
    unit.current_hp = max(0, min(unit.current_hp, eff.hp))
    unit.current_en = max(0, min(unit.current_en, eff.en))
    unit.current_sp = max(0, min(unit.current_sp, eff.sp))

def restore_pools(unit: UnitInstance) -> None:
    unit.current_hp = unit.effective.hp
    unit.current_en = unit.effective.en
    unit.current_sp = unit.effective.sp

def recompute(unit: UnitInstance, inventory: Inventory, *, previous: Optional[StatBlock] = None,
              gain: bool = True) -> UnitInstance:
    """Refresh ``unit.effective`` from its base stats and equipment.

    With ``gain`` a raised maximum adds the difference to the matching pool; a
    lowered one always clamps. A dead unit stays dead.
    """
    old = previous if previous is not None else unit.effective
    unit.effective = compute_effective_stats(unit.base, unit.equipped, inventory)
    if not gain:
        clamp_pools(unit)
        return unit
    gains: Dict[str, int] = {
        "hp": unit.effective.hp - old.hp,
        "en": unit.effective.en - old.en,
        "sp": unit.effective.sp - old.sp,
    }
    if gains["hp"] > 0 and unit.current_hp > 0:
        unit.current_hp += gains["hp"]
    if gains["en"] > 0:
        unit.current_en += gains["en"]
    if gains["sp"] > 0:
        unit.current_sp += gains["sp"]
    clamp_pools(unit)
    return unit

__all__ = [
    "compute_effective_stats","equipment_bonus","apply_ng_plus_scaling","derive_base_stats",
    "clamp_pools","restore_pools","recompute","LEVEL_UP_INCREMENTS","NG_PLUS_STAT_MULTIPLIER","Inventory",
]
