"""Factory helpers for constructing and refreshing UnitInstance records.

One entry point, ``create_or_refresh``, serves new rosters, battle deployment,
hangar refresh and save loading, so every context derives stats the same way.
"""
from __future__ import annotations
import uuid
from typing import Iterable, List, Optional, Set

from srwlite.core.types import SlotType
from srwlite.data.definitions import RobotDefinition, ScenarioDefinition
from srwlite.data.loader import get_robot
from .experience import xp_to_next, MIN_LEVEL
from .models import StatBlock, UnitInstance, empty_slots
from .positions import PositionGenerator, RandomPositions, terrain_for
from .stats import Inventory, derive_base_stats, compute_effective_stats, recompute, restore_pools

def new_instance_id(definition_id: str) -> str:
    return f"{definition_id}-{uuid.uuid4().hex[:8]}"

def _auto_equip(definition: RobotDefinition, inventory: Inventory, claimed: Set[str]):
    slots = empty_slots()
    for slot in SlotType:
        wanted = definition.default_equipment.get(slot)
        if not wanted:
            continue
        for inst in inventory.values():
            if inst.definition_id == wanted and inst.instance_id not in claimed:
                slots[slot] = inst.instance_id
                claimed.add(inst.instance_id)
                break
    return slots

def create_or_refresh(
    definition: RobotDefinition,
    is_player: bool,
    inventory: Inventory,
    ng_cycle: int = 0,
    prior: Optional[UnitInstance] = None,
    *,
    positions: Optional[PositionGenerator] = None,
    claimed: Optional[Set[str]] = None,
    restore: bool = False,
    reset_turn: bool = False,
    reposition: bool = False,
) -> UnitInstance:
    """Build a fresh unit, or re-derive ``prior`` against current definitions and equipment.

    Fresh player units auto-equip their default items from ``inventory``, skipping
    instance ids already in ``claimed`` (shared across one construction batch).
    Enemies deploy without equipment. A refreshed unit keeps identity, level, XP,
    equipment, position and pools; stats are always recomputed and pools re-clamped.
    """
    positions = positions or RandomPositions()
    if prior is None:
        level = MIN_LEVEL
        base = derive_base_stats(definition, level, is_player=is_player, cycle=ng_cycle)
        equipped = _auto_equip(definition, inventory, claimed if claimed is not None else set()) if is_player else empty_slots()
        pos = positions.place(is_player)
        effective = compute_effective_stats(base, equipped, inventory)
        return UnitInstance(
            instance_id=new_instance_id(definition.id),
            definition_id=definition.id,
            name=definition.name,
            pilot=definition.pilot,
            is_player=is_player,
            level=level,
            current_xp=0,
            xp_to_next_level=xp_to_next(level),
            base=base,
            effective=effective,
            current_hp=effective.hp,
            current_en=effective.en,
            current_sp=effective.sp,
            equipped=equipped,
            position=pos,
            terrain=terrain_for(pos[1]),
        )

    unit = prior.clone(
        name=definition.name,
        pilot=definition.pilot,
        is_player=is_player,
        xp_to_next_level=xp_to_next(prior.level),
        base=derive_base_stats(definition, prior.level, is_player=is_player, cycle=ng_cycle),
    )
    if claimed is not None:
        claimed.update(unit.equipped_ids())
    # Deserialized units carry a zero effective block until their first refresh.
    recompute(unit, inventory, previous=prior.effective, gain=prior.effective != StatBlock())
    if restore:
        restore_pools(unit)
    if reset_turn:
        unit.has_acted = False
        unit.active_effect = None
    if reposition:
        unit.position = positions.place(is_player)
    unit.terrain = terrain_for(unit.position[1])
    return unit

def build_roster(definitions: Iterable[RobotDefinition], inventory: Inventory, *,
                 positions: Optional[PositionGenerator] = None) -> List[UnitInstance]:
    claimed: Set[str] = set()
    return [create_or_refresh(d, True, inventory, positions=positions, claimed=claimed) for d in definitions]

def refresh_units(units: Iterable[UnitInstance], inventory: Inventory, ng_cycle: int = 0, *,
                  positions: Optional[PositionGenerator] = None, **overrides) -> List[UnitInstance]:
    """Re-derive each unit through ``create_or_refresh``; units with unknown definitions are dropped."""
    out: List[UnitInstance] = []
    for u in units:
        d = get_robot(u.definition_id)
        if d is None:
            continue
        out.append(create_or_refresh(d, u.is_player, inventory, ng_cycle, u, positions=positions, **overrides))
    return out

def deploy_enemies(scenario: ScenarioDefinition, ng_cycle: int, *,
                   positions: Optional[PositionGenerator] = None) -> List[UnitInstance]:
    enemies: List[UnitInstance] = []
    for rid in scenario.enemies:
        d = get_robot(rid)
        if d is None:
            continue
        enemies.append(create_or_refresh(d, False, {}, ng_cycle, positions=positions))
    return enemies

__all__ = ["create_or_refresh","build_roster","refresh_units","deploy_enemies","new_instance_id"]
