"""Runtime records for units and equipment instances.

A UnitInstance exists twice while a battle runs: the roster copy (source of truth
for progression and equipment) and the battle copy (a disposable projection).
Both are produced by :mod:`srwlite.battle.factory`; never share one object
between the two contexts.
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from typing import Dict, Optional, Tuple, Any

from srwlite.core.types import SpiritEffect, SlotType, TerrainType

# ---------------------------------------------------------------------------
# Stat block
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class StatBlock:
    hp: int = 0
    en: int = 0
    sp: int = 0
    attack: int = 0
    defense: int = 0
    mobility: int = 0

    def plus(self, other: "StatBlock") -> "StatBlock":
        return StatBlock(*(getattr(self, f.name) + getattr(other, f.name) for f in fields(self)))

    def scaled(self, factor: int) -> "StatBlock":
        return StatBlock(*(getattr(self, f.name) * factor for f in fields(self)))

    def to_dict(self) -> Dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatBlock":
        return cls(**{f.name: int(data.get(f.name, 0)) for f in fields(cls)})

# ---------------------------------------------------------------------------
# Equipment
# ---------------------------------------------------------------------------
@dataclass
class EquipmentInstance:
    instance_id: str
    definition_id: str
    level: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {"instance_id": self.instance_id, "definition_id": self.definition_id, "level": self.level}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EquipmentInstance":
        return cls(str(data["instance_id"]), str(data["definition_id"]), int(data.get("level", 1)))

def empty_slots() -> Dict[SlotType, Optional[str]]:
    return {slot: None for slot in SlotType}

# ---------------------------------------------------------------------------
# Unit
# ---------------------------------------------------------------------------
@dataclass
class UnitInstance:
    instance_id: str
    definition_id: str
    name: str
    pilot: str
    is_player: bool
    level: int
    current_xp: int
    xp_to_next_level: int
    base: StatBlock
    effective: StatBlock
    current_hp: int
    current_en: int
    current_sp: int
    active_effect: Optional[SpiritEffect] = None
    has_acted: bool = False
    equipped: Dict[SlotType, Optional[str]] = field(default_factory=empty_slots)
    position: Tuple[float, float] = (50.0, 50.0)
    terrain: TerrainType = TerrainType.SPACE

    @property
    def is_alive(self) -> bool:
        return self.current_hp > 0

    @property
    def can_act(self) -> bool:
        return self.is_alive and not self.has_acted

    def equipped_ids(self) -> Tuple[str, ...]:
        return tuple(i for i in self.equipped.values() if i)

    def clone(self, **changes: Any) -> "UnitInstance":
        """Copy with an independent slot map; ``changes`` are applied on top."""
        changes.setdefault("equipped", dict(self.equipped))
        return replace(self, **changes)

    # Persistence -----------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "instance_id": self.instance_id,
            "definition_id": self.definition_id,
            "name": self.name,
            "pilot": self.pilot,
            "is_player": self.is_player,
            "level": self.level,
            "current_xp": self.current_xp,
            "xp_to_next_level": self.xp_to_next_level,
            "current_hp": self.current_hp,
            "current_en": self.current_en,
            "current_sp": self.current_sp,
            "active_effect": self.active_effect.value if self.active_effect else None,
            "has_acted": self.has_acted,
            "equipped": {slot.value: iid for slot, iid in self.equipped.items()},
            "position": list(self.position),
            "terrain": self.terrain.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnitInstance":
        """Rebuild a unit from a snapshot. Stats are left zeroed; run it through the factory."""
        effect = data.get("active_effect")
        pos = data.get("position") or (50.0, 50.0)
        return cls(
            instance_id=str(data["instance_id"]),
            definition_id=str(data["definition_id"]),
            name=str(data.get("name", data["definition_id"])),
            pilot=str(data.get("pilot", "")),
            is_player=bool(data["is_player"]),
            level=int(data["level"]),
            current_xp=int(data["current_xp"]),
            xp_to_next_level=int(data.get("xp_to_next_level", 0)),
            base=StatBlock(),
            effective=StatBlock(),
            current_hp=int(data["current_hp"]),
            current_en=int(data["current_en"]),
            current_sp=int(data["current_sp"]),
            active_effect=SpiritEffect(effect) if effect else None,
            has_acted=bool(data.get("has_acted", False)),
            equipped={slot: (data.get("equipped") or {}).get(slot.value) for slot in SlotType},
            position=(float(pos[0]), float(pos[1])),
            terrain=TerrainType(data.get("terrain", TerrainType.SPACE.value)),
        )

__all__ = ["StatBlock","EquipmentInstance","UnitInstance","empty_slots"]
