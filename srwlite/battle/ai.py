"""Decision heuristics shared by the enemy turn and the delegation agent."""
from __future__ import annotations
import random
from typing import Iterable, List, Optional, Collection, Mapping

from srwlite.core.types import SlotType, SLOT_RANKING_STAT
from srwlite.data.loader import get_robot, get_spirit, get_equipment
from .models import UnitInstance, EquipmentInstance

SPIRIT_USE_CHANCE = 0.33

def lowest_hp(units: Iterable[UnitInstance]) -> Optional[UnitInstance]:
    """Living unit with the least current HP; list order breaks ties."""
    best: Optional[UnitInstance] = None
    for u in units:
        if u.is_alive and (best is None or u.current_hp < best.current_hp):
            best = u
    return best

def first_ready(units: Iterable[UnitInstance]) -> Optional[UnitInstance]:
    for u in units:
        if u.can_act:
            return u
    return None

def affordable_spirits(unit: UnitInstance) -> List[str]:
    d = get_robot(unit.definition_id)
    if d is None:
        return []
    out = []
    for sid in d.spirits:
        s = get_spirit(sid)
        if s is not None and unit.current_sp >= s.cost:
            out.append(sid)
    return out

def choose_spirit(unit: UnitInstance, rng: random.Random, chance: float = SPIRIT_USE_CHANCE) -> Optional[str]:
    if unit.active_effect is not None or rng.random() >= chance:
        return None
    options = affordable_spirits(unit)
    if not options:
        return None
    return options[rng.randrange(len(options))]

def ranking_value(instance: EquipmentInstance, slot: SlotType) -> int:
    d = get_equipment(instance.definition_id)
    if d is None:
        return 0
    return d.boost_at(instance.level).get(SLOT_RANKING_STAT[slot], 0)

def best_item_for_slot(inventory: Mapping[str, EquipmentInstance], slot: SlotType,
                       taken: Collection[str]) -> Optional[EquipmentInstance]:
    """Strongest free instance for ``slot``, ranked by the stat that slot boosts."""
    best: Optional[EquipmentInstance] = None
    best_value = -1
    for inst in inventory.values():
        d = get_equipment(inst.definition_id)
        if d is None or d.slot is not slot or inst.instance_id in taken:
            continue
        value = ranking_value(inst, slot)
        if value > best_value:
            best, best_value = inst, value
    return best

def upgrade_order(inventory: Mapping[str, EquipmentInstance], equipped: Collection[str]) -> List[EquipmentInstance]:
    """Equipped instances, highest current level first."""
    items = [i for i in inventory.values() if i.instance_id in equipped]
    return sorted(items, key=lambda i: -i.level)

__all__ = [
    "lowest_hp","first_ready","choose_spirit","affordable_spirits","best_item_for_slot","upgrade_order",
    "ranking_value","SPIRIT_USE_CHANCE",
]
