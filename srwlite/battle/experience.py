"""Experience awards and level-up handling.

xp_to_next_level = BASE_XP * level. One award may cross several thresholds;
each crossing adds the fixed per-level increments and refills every pool.
"""
from __future__ import annotations

from .models import UnitInstance
from .stats import LEVEL_UP_INCREMENTS, Inventory, compute_effective_stats, restore_pools

BASE_XP = 100
XP_PER_HIT = 10
XP_PER_DEFEAT = 30
MIN_LEVEL = 1

def xp_to_next(level: int) -> int:
    return BASE_XP * max(MIN_LEVEL, int(level))

def apply_level_up(unit: UnitInstance, inventory: Inventory) -> int:
    """Consume banked XP into levels. Returns the number of levels gained."""
    gained = 0
    while unit.xp_to_next_level > 0 and unit.current_xp >= unit.xp_to_next_level:
        unit.current_xp -= unit.xp_to_next_level
        unit.level += 1
        unit.xp_to_next_level = xp_to_next(unit.level)
        unit.base = unit.base.plus(LEVEL_UP_INCREMENTS)
        unit.effective = compute_effective_stats(unit.base, unit.equipped, inventory)
        restore_pools(unit)
        gained += 1
    return gained

def apply_experience(unit: UnitInstance, amount: int, inventory: Inventory) -> dict:
    """Add ``amount`` XP to ``unit`` (mutated) and level it up as far as it goes."""
    before = unit.level
    unit.current_xp += max(0, int(amount))
    levels = apply_level_up(unit, inventory)
    return {"gained": amount, "leveled": levels > 0, "from": before, "to": unit.level}

__all__ = ["apply_experience","apply_level_up","xp_to_next","BASE_XP","XP_PER_HIT","XP_PER_DEFEAT","MIN_LEVEL"]
