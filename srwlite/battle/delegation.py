"""CPU automation: the enemy turn and delegation (auto-play) mode.

Automation runs as asyncio coroutines that issue the same commands a human
would, through GamePhaseMachine. At most one automated sequence holds
``cpu_lock`` at a time; a caller that finds it held simply skips its step.

Every sequence carries an AutomationToken and re-checks it after each pause.
The token goes stale when delegation is switched off (for delegated work), when
the phase moves somewhere the sequence did not move it, or when the battle
session is replaced. A stale token ends the sequence without further commands.
"""
from __future__ import annotations
import asyncio
import random
from dataclasses import dataclass
from typing import Optional

from srwlite.core.errors import AutomationError
from srwlite.core.logging import logger
from srwlite.core.types import GamePhase, MessageCategory, SlotType
from srwlite.data.loader import get_equipment, get_spirit
from .ai import first_ready, lowest_hp, choose_spirit, best_item_for_slot, upgrade_order, SPIRIT_USE_CHANCE
from .phase import GamePhaseMachine

CPU_DELAY_MS = 750

@dataclass
class AutomationToken:
    machine: GamePhaseMachine
    phase: GamePhase
    epoch: int
    requires_delegation: bool

    @classmethod
    def capture(cls, machine: GamePhaseMachine, *, requires_delegation: bool) -> "AutomationToken":
        return cls(machine, machine.phase, machine.epoch, requires_delegation)

    def still_valid(self) -> bool:
        m = self.machine
        if self.requires_delegation and not m.delegation_enabled:
            return False
        return m.epoch == self.epoch and m.phase is self.phase

    def follow(self) -> None:
        """Accept the machine's current phase/epoch as the result of our own command."""
        self.phase = self.machine.phase
        self.epoch = self.machine.epoch

class DelegationAgent:
    def __init__(self, machine: GamePhaseMachine, *, delay_ms: int = CPU_DELAY_MS,
                 rng: Optional[random.Random] = None, spirit_chance: float = SPIRIT_USE_CHANCE):
        self.machine = machine
        self.delay = max(0, delay_ms) / 1000.0
        self.rng = rng or machine.rng
        self.spirit_chance = spirit_chance
        self.cpu_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    def _cpu(self, text: str) -> None:
        self.machine.say(f"CPU: {text}", MessageCategory.CPU_ACTION)

    async def _pause(self, token: AutomationToken, factor: float = 1.0) -> bool:
        if self.delay:
            await asyncio.sleep(self.delay * factor)
        else:
            await asyncio.sleep(0)
        return token.still_valid()

    async def _guarded(self, name: str, body) -> bool:
        """Run ``body`` under the CPU lock. Faults drop the game back to the hangar."""
        if self.cpu_lock.locked():
            return False
        async with self.cpu_lock:
            try:
                return await body()
            except AutomationError as e:
                logger.warn("AutomationStopped", sequence=name, reason=e.detail)
                self.machine.say(f"CPU: {e.detail}", MessageCategory.SYSTEM)
                return False
            except Exception as e:
                logger.error("AutomationFailed", sequence=name, error=repr(e))
                self.machine.say(f"CPU: an error interrupted {name}. Returning to the hangar.", MessageCategory.SYSTEM)
                self.machine.enter_hangar()
                # No automatic retry during this hangar visit.
                self.machine.hangar_automation_ran = True
                return False

    # ------------------------------------------------------------------
    # Enemy turn
    # ------------------------------------------------------------------
    async def run_enemy_turn(self) -> bool:
        m = self.machine
        if m.phase is not GamePhase.ENEMY_TURN:
            return False

        async def body() -> bool:
            token = AutomationToken.capture(m, requires_delegation=False)
            while True:
                enemy = m.next_enemy()
                if enemy is None:
                    break
                target = lowest_hp(m.session.player_units)
                self._cpu(f"{enemy.name} is moving...")
                if not await self._pause(token):
                    return False
                if target is not None:
                    self._cpu(f"{enemy.name} targets {target.name}.")
                    if not await self._pause(token, 0.5):
                        return False
                m.enemy_step()
                token.follow()
                if m.phase.is_game_over:
                    return True
            return m.finish_enemy_turn()

        return await self._guarded("the enemy turn", body)

    # ------------------------------------------------------------------
    # Delegated player turn
    # ------------------------------------------------------------------
    async def play_step(self) -> bool:
        """Advance the delegated player turn by one phase step."""
        m = self.machine
        if not m.delegation_enabled or not m.phase.is_player_turn or m.session is None:
            return False

        async def body() -> bool:
            token = AutomationToken.capture(m, requires_delegation=True)
            s = m.session
            if m.phase is GamePhase.SELECT_UNIT:
                unit = first_ready(s.player_units)
                if unit is None:
                    return False
                self._cpu(f"selecting {unit.name}.")
                if not await self._pause(token, 1 / 3):
                    return False
                return m.select_unit(unit.instance_id, silent=True)

            unit = s.selected_unit()
            if unit is None or not unit.is_alive:
                return m.cancel(silent=True)

            if m.phase is GamePhase.ACTION:
                self._cpu(f"{unit.name} is deciding...")
                if not await self._pause(token):
                    return False
                spirit_id = choose_spirit(unit, self.rng, self.spirit_chance)
                if spirit_id is not None and m.activate_spirit(spirit_id, silent=True):
                    self._cpu(f"{unit.name} uses {get_spirit(spirit_id).name}.")
                    token.follow()
                    if not await self._pause(token, 0.5):
                        return True
                if m.choose_attack(silent=True):
                    self._cpu(f"{unit.name} readies an attack.")
                    return True
                return m.choose_wait(silent=True)

            # SELECT_TARGET
            self._cpu(f"{unit.name} is searching for a target...")
            if not await self._pause(token):
                return False
            target = lowest_hp(s.enemy_units)
            if target is None:
                self._cpu(f"{unit.name} has no target and stands by.")
                m.cancel(silent=True)
                return m.choose_wait(silent=True)
            self._cpu(f"{unit.name} locks onto {target.name}. Firing.")
            if not await self._pause(token, 0.5):
                return False
            return m.select_target(target.instance_id, silent=True)

        return await self._guarded("the delegated turn", body)

    # ------------------------------------------------------------------
    # Hangar automation
    # ------------------------------------------------------------------
    async def _hangar_tasks(self, token: AutomationToken) -> None:
        m = self.machine
        roster = m.roster
        self._cpu("auto-equipping and upgrading...")
        for unit in list(roster.units):
            for slot in SlotType:
                if not token.still_valid():
                    raise AutomationError("hangar", "delegation disabled, hangar automation stopped.")
                current = roster.find(unit.instance_id)
                if current is None or current.equipped.get(slot):
                    continue
                item = best_item_for_slot(m.inventory, slot, roster.equipped_instance_ids())
                if item is None:
                    continue
                if m.equip_item(unit.instance_id, slot, item.instance_id, silent=True):
                    self._cpu(f"{unit.name} equips {get_equipment(item.definition_id).name}.")
                    await self._pause(token, 0.25)
        for item in upgrade_order(m.inventory, roster.equipped_instance_ids()):
            if not token.still_valid():
                raise AutomationError("hangar", "delegation disabled, hangar automation stopped.")
            cost = roster.meta.upgrade_cost(item.instance_id)
            if cost is None or cost > roster.meta.credits:
                continue
            if m.upgrade_item(item.instance_id, silent=True):
                self._cpu(f"upgraded {get_equipment(item.definition_id).name} to Lv.{item.level} ({cost}C).")
                await self._pause(token, 0.25)
        self._cpu("loadout complete.")

    async def run_hangar(self) -> bool:
        """Equip, upgrade and launch the next scenario; once per hangar visit."""
        m = self.machine
        if not m.delegation_enabled or m.phase is not GamePhase.HANGAR or m.hangar_automation_ran:
            return False

        async def body() -> bool:
            m.hangar_automation_ran = True
            token = AutomationToken.capture(m, requires_delegation=True)
            await self._hangar_tasks(token)
            if not await self._pause(token, 0.5):
                raise AutomationError("hangar", "delegation disabled, hangar automation stopped.")
            self._cpu("ready. Launching the next scenario.")
            return m.start_scenario(silent=True)

        return await self._guarded("hangar automation", body)

    async def run_after_victory(self) -> bool:
        m = self.machine
        if not m.delegation_enabled or m.phase is not GamePhase.VICTORY:
            return False

        async def body() -> bool:
            token = AutomationToken.capture(m, requires_delegation=True)
            m.say("Victory! The CPU is preparing the next sortie...", MessageCategory.SYSTEM)
            if not await self._pause(token):
                raise AutomationError("victory", "delegation disabled, automatic progress stopped.")
            m.return_to_hangar(silent=True)
            m.hangar_automation_ran = True
            token.follow()
            await self._hangar_tasks(token)
            if not await self._pause(token, 0.5):
                raise AutomationError("victory", "delegation disabled, automatic progress stopped.")
            self._cpu("starting the next scenario.")
            return m.start_scenario(silent=True)

        return await self._guarded("post-victory automation", body)

__all__ = ["DelegationAgent","AutomationToken","CPU_DELAY_MS"]
