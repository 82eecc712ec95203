"""Attack resolution.

``resolve_attack`` is pure: it reads both units and returns an AttackOutcome;
applying the outcome is the caller's job. Stage order is fixed:

  1. defender evade effect  -> evaded, effect consumed, no damage
  2. miss roll (10%), forced hit by GUARANTEED_HIT (consumed)
  3. miss                   -> no damage, no XP
  4. hit                    -> attack XP for player attackers
  5-7. damage = max(atk - def * (1 + terrain), atk * 0.1) * U(0.8, 1.2), rounded
  8. DOUBLE_DAMAGE doubles (consumed)
  9. critical (15%) multiplies by 1.5 after doubling, rounded
 10-11. HP floor at 0, defeat bonus XP for player attackers
"""
from __future__ import annotations
from dataclasses import dataclass, field
import random
from typing import Optional, List

from srwlite.core.errors import BattleStateError
from srwlite.core.rng import round_half_up
from srwlite.core.types import SpiritEffect
from .experience import XP_PER_HIT, XP_PER_DEFEAT
from .models import UnitInstance

MISS_CHANCE = 0.10
CRIT_CHANCE = 0.15
CRIT_MULTIPLIER = 1.5
CHIP_DAMAGE_RATIO = 0.1
VARIANCE_LOW = 0.8
VARIANCE_HIGH = 1.2

@dataclass
class AttackOutcome:
    attacker_id: str
    defender_id: str
    damage: int = 0
    is_miss: bool = False
    is_evaded: bool = False
    is_critical: bool = False
    defender_hp_before: int = 0
    defender_hp_after: int = 0
    defender_defeated: bool = False
    xp_gained: int = 0
    attacker_effect_consumed: bool = False
    defender_effect_consumed: bool = False
    terrain_bonus: float = 0.0
    log: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return " ".join(self.log)

def resolve_attack(
    attacker: Optional[UnitInstance],
    defender: Optional[UnitInstance],
    attacker_effect: Optional[SpiritEffect],
    defender_effect: Optional[SpiritEffect],
    terrain_bonus: float = 0.0,
    rng: Optional[random.Random] = None,
) -> AttackOutcome:
    if attacker is None or defender is None:
        raise BattleStateError("resolve_attack requires both an attacker and a defender")
    rng = rng or random.Random()
    out = AttackOutcome(
        attacker_id=attacker.instance_id,
        defender_id=defender.instance_id,
        defender_hp_before=defender.current_hp,
        defender_hp_after=defender.current_hp,
        terrain_bonus=terrain_bonus,
    )

    if defender_effect is SpiritEffect.GUARANTEED_EVADE:
        out.is_miss = True
        out.is_evaded = True
        out.defender_effect_consumed = True
        out.log.append(f"{attacker.name} attacks... but {defender.name} evades it with Alert!")
        return out

    missed = rng.random() < MISS_CHANCE
    if attacker_effect is SpiritEffect.GUARANTEED_HIT:
        missed = False
        out.attacker_effect_consumed = True

    if missed:
        out.is_miss = True
        out.log.append(f"{attacker.name}'s attack misses {defender.name}.")
        return out

    if attacker.is_player:
        out.xp_gained += XP_PER_HIT
    line = f"{attacker.name} attacks {defender.name}!"
    if attacker_effect is SpiritEffect.GUARANTEED_HIT:
        line += " (Strike: certain hit!)"

    effective_defense = defender.effective.defense * (1 + terrain_bonus)
    atk = attacker.effective.attack
    base_damage = max(atk - effective_defense, atk * CHIP_DAMAGE_RATIO)
    damage = round_half_up(base_damage * rng.uniform(VARIANCE_LOW, VARIANCE_HIGH))

    if attacker_effect is SpiritEffect.DOUBLE_DAMAGE:
        damage *= 2
        out.attacker_effect_consumed = True
        line += " (Valor: double damage!)"

    if rng.random() < CRIT_CHANCE:
        out.is_critical = True
        damage = round_half_up(damage * CRIT_MULTIPLIER)
        line += " Critical hit!"

    damage = max(0, damage)
    new_hp = max(0, defender.current_hp - damage)
    if terrain_bonus > 0:
        line += f" [Terrain: defense +{round(terrain_bonus * 100)}%]"
    line += f" {defender.name} takes {damage} damage. (HP: {defender.current_hp} -> {new_hp})"
    out.damage = damage
    out.defender_hp_after = new_hp

    if new_hp == 0:
        out.defender_defeated = True
        line += f" {defender.name} is destroyed!"
        if attacker.is_player:
            out.xp_gained += XP_PER_DEFEAT
    out.log.append(line)
    return out

__all__ = ["resolve_attack","AttackOutcome","MISS_CHANCE","CRIT_CHANCE","CRIT_MULTIPLIER","CHIP_DAMAGE_RATIO"]
