"""Durable player roster and equipment management.

The roster copy of each unit is the source of truth for progression and
equipment. Battle copies report back through ``reconcile``.
"""
from __future__ import annotations
from typing import List, Optional, Tuple

from srwlite.battle.factory import create_or_refresh
from srwlite.battle.models import UnitInstance
from srwlite.battle.positions import PositionGenerator
from srwlite.core.logging import logger
from srwlite.core.types import SlotType
from srwlite.data.loader import get_robot, get_equipment
from srwlite.inventory import PlayerMetaState

class RosterStore:
    def __init__(self, units: List[UnitInstance], meta: PlayerMetaState,
                 positions: Optional[PositionGenerator] = None):
        self.units: List[UnitInstance] = list(units)
        self.meta = meta
        self.positions = positions

    def find(self, unit_id: Optional[str]) -> Optional[UnitInstance]:
        for u in self.units:
            if u.instance_id == unit_id:
                return u
        return None

    def holder_of(self, instance_id: str) -> Optional[Tuple[str, SlotType]]:
        for u in self.units:
            for slot, iid in u.equipped.items():
                if iid == instance_id:
                    return u.instance_id, slot
        return None

    def equipped_instance_ids(self) -> List[str]:
        return [iid for u in self.units for iid in u.equipped_ids()]

    def is_exclusive(self) -> bool:
        ids = self.equipped_instance_ids()
        return len(ids) == len(set(ids))

    def _refresh(self, unit: UnitInstance, **overrides) -> UnitInstance:
        d = get_robot(unit.definition_id)
        if d is None:
            return unit
        return create_or_refresh(d, True, self.meta.inventory, 0, unit, positions=self.positions, **overrides)

    def _commit(self, changed: List[UnitInstance]) -> None:
        by_id = {u.instance_id: u for u in changed}
        self.units = [by_id.get(u.instance_id, u) for u in self.units]

    # Commands -------------------------------------------------------------
    def equip(self, unit_id: str, slot: SlotType, instance_id: Optional[str]) -> Tuple[bool, str]:
        """Put ``instance_id`` in ``unit_id``'s ``slot`` (None clears it).

        An item held by another slot anywhere in the roster is taken off its holder
        first; every touched unit is recomputed in the same commit.
        """
        unit = self.find(unit_id)
        if unit is None:
            return False, "Unknown unit."
        if instance_id is None:
            if unit.equipped.get(slot) is None:
                return False, f"{unit.name} has nothing equipped in {slot.value}."
            patched = unit.clone()
            patched.equipped[slot] = None
            self._commit([self._refresh(patched)])
            logger.debug("ItemUnequipped", unit=unit_id, slot=slot.value)
            return True, f"{unit.name}: {slot.value} slot cleared."
        inst = self.meta.get(instance_id)
        if inst is None:
            return False, "Unknown equipment."
        d = get_equipment(inst.definition_id)
        if d is None or d.slot is not slot:
            return False, f"{inst.definition_id} does not fit the {slot.value} slot."
        if unit.equipped.get(slot) == instance_id:
            return False, f"{d.name} is already equipped on {unit.name}."
        changed: List[UnitInstance] = []
        holder = self.holder_of(instance_id)
        if holder is not None and holder[0] != unit_id:
            prev = self.find(holder[0]).clone()
            prev.equipped[holder[1]] = None
            changed.append(self._refresh(prev))
        patched = unit.clone()
        for s, iid in patched.equipped.items():
            if iid == instance_id:
                patched.equipped[s] = None
        patched.equipped[slot] = instance_id
        changed.append(self._refresh(patched))
        self._commit(changed)
        logger.debug("ItemEquipped", unit=unit_id, slot=slot.value, item=instance_id)
        return True, f"{unit.name} equipped {d.name} (Lv.{inst.level})."

    def upgrade(self, instance_id: str) -> Tuple[bool, str]:
        inst = self.meta.get(instance_id)
        d = get_equipment(inst.definition_id) if inst else None
        if inst is None or d is None:
            return False, "Unknown equipment."
        if inst.level >= d.max_level:
            return False, f"{d.name} is already at max level ({d.max_level})."
        cost = d.upgrade_cost(inst.level)
        if not self.meta.spend(cost):
            return False, f"Not enough credits to upgrade {d.name} (need {cost}, have {self.meta.credits})."
        inst.level += 1
        holders = [u for u in self.units if instance_id in u.equipped_ids()]
        self._commit([self._refresh(u) for u in holders])
        logger.info("ItemUpgraded", item=instance_id, level=inst.level, cost=cost)
        return True, f"{d.name} upgraded to Lv.{inst.level} for {cost} credits."

    def reconcile(self, battle_unit: UnitInstance) -> Optional[UnitInstance]:
        """Mirror a battle copy's progression and pools onto its roster counterpart."""
        unit = self.find(battle_unit.instance_id)
        if unit is None:
            return None
        patched = unit.clone(
            level=battle_unit.level,
            current_xp=battle_unit.current_xp,
            xp_to_next_level=battle_unit.xp_to_next_level,
            effective=battle_unit.effective,
            current_hp=battle_unit.current_hp,
            current_en=battle_unit.current_en,
            current_sp=battle_unit.current_sp,
        )
        refreshed = self._refresh(patched, reset_turn=True)
        self._commit([refreshed])
        return refreshed

    def refresh_all(self, *, restore: bool = True) -> None:
        self.units = [self._refresh(u, restore=restore, reset_turn=True) for u in self.units]

__all__ = ["RosterStore"]
