"""Player meta state: credits and the equipment inventory.

Credits never go negative; equipment instances are created at game start or NG+
reset and afterwards only change level.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Any

from srwlite.battle.models import EquipmentInstance
from srwlite.core.rng import round_half_up
from srwlite.data.definitions import RobotDefinition
from srwlite.data.loader import get_equipment, STARTING_EQUIPMENT_IDS

INITIAL_CREDITS = 10000
CREDITS_PER_DEFEAT = 750
NG_PLUS_CREDIT_MULTIPLIER = 0.05

def defeat_reward(ng_cycle: int) -> int:
    return round_half_up(CREDITS_PER_DEFEAT * (1 + max(0, ng_cycle) * NG_PLUS_CREDIT_MULTIPLIER))

@dataclass
class PlayerMetaState:
    credits: int = INITIAL_CREDITS
    inventory: Dict[str, EquipmentInstance] = field(default_factory=dict)

    def add_credits(self, amount: int) -> int:
        self.credits = max(0, self.credits + int(amount))
        return self.credits

    def spend(self, amount: int) -> bool:
        amount = int(amount)
        if amount < 0 or amount > self.credits:
            return False
        self.credits -= amount
        return True

    def get(self, instance_id: Optional[str]) -> Optional[EquipmentInstance]:
        if not instance_id:
            return None
        return self.inventory.get(instance_id)

    def upgrade_cost(self, instance_id: str) -> Optional[int]:
        """Price of the next level, or None when unknown or already maxed."""
        inst = self.inventory.get(instance_id)
        if inst is None:
            return None
        d = get_equipment(inst.definition_id)
        if d is None or inst.level >= d.max_level:
            return None
        return d.upgrade_cost(inst.level)

    def copy(self) -> "PlayerMetaState":
        return PlayerMetaState(self.credits, {k: EquipmentInstance(v.instance_id, v.definition_id, v.level)
                                              for k, v in self.inventory.items()})

    def to_dict(self) -> Dict[str, Any]:
        return {"credits": self.credits, "inventory": [i.to_dict() for i in self.inventory.values()]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerMetaState":
        items = [EquipmentInstance.from_dict(d) for d in data.get("inventory", [])]
        return cls(max(0, int(data["credits"])), {i.instance_id: i for i in items})

def starting_meta(roster_definitions: Iterable[RobotDefinition]) -> PlayerMetaState:
    """Initial credits plus one level-1 instance of each starting item and of every
    default item of the starting roster not already represented."""
    meta = PlayerMetaState()
    def _add(eq_id: str):
        iid = f"inst_{eq_id}_{len(meta.inventory) + 1}"
        meta.inventory[iid] = EquipmentInstance(iid, eq_id, 1)
    for eq_id in STARTING_EQUIPMENT_IDS:
        _add(eq_id)
    for d in roster_definitions:
        for eq_id in d.default_equipment.values():
            if not any(i.definition_id == eq_id for i in meta.inventory.values()):
                _add(eq_id)
    return meta

__all__ = ["PlayerMetaState","starting_meta","defeat_reward","INITIAL_CREDITS","CREDITS_PER_DEFEAT","NG_PLUS_CREDIT_MULTIPLIER"]
