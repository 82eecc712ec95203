"""The running game: one phase machine, its automation agent and persistence.

Lifecycle:
  new_game()      fresh roster, starting inventory, scenario cursor 0, HANGAR
  load_or_new()   resume the saved slot, or cold-start when it is missing/invalid
  pump()          drive automation (enemy turn, delegation, hangar) until idle
"""
from __future__ import annotations
import asyncio
import random
from typing import Optional

from srwlite.battle.delegation import DelegationAgent
from srwlite.battle.factory import build_roster
from srwlite.battle.phase import GamePhaseMachine
from srwlite.battle.positions import PositionGenerator, RandomPositions
from srwlite.battle.session import BattleSession
from srwlite.core.logging import logger
from srwlite.core.rng import make_rng
from srwlite.core.types import GamePhase, MessageCategory
from srwlite.data.loader import player_robots
from srwlite.dialogue.narration import MockNarrator
from srwlite.inventory import starting_meta
from srwlite.system.save import BlobStore, PersistenceGateway, restore
from srwlite.system.settings import Settings
from .director import ScenarioDirector
from .roster import RosterStore

DEFAULT_MAX_STEPS = 2000

class GameContext:
    def __init__(self, settings: Settings, store: BlobStore, *, rng: Optional[random.Random] = None,
                 positions: Optional[PositionGenerator] = None, narrator=None,
                 delay_ms: Optional[int] = None):
        self.settings = settings
        self.gateway = PersistenceGateway(store)
        self.rng = rng or make_rng()
        self.positions = positions or RandomPositions(self.rng)
        self.narrator = narrator or MockNarrator()
        self.delay_ms = settings.data.cpu_delay_ms if delay_ms is None else delay_ms
        self.machine: Optional[GamePhaseMachine] = None
        self.agent: Optional[DelegationAgent] = None
        settings.on_change(self._settings_changed)

    def _install(self, roster: RosterStore, director: ScenarioDirector, phase: GamePhase,
                 session: Optional[BattleSession] = None, delegation: bool = False) -> GamePhaseMachine:
        m = GamePhaseMachine(roster, director, rng=self.rng, positions=self.positions,
                             narrator=self.narrator, narration=self.settings.data.narration, phase=phase)
        m.session = session
        m.delegation_enabled = delegation
        m.on_checkpoint = self._on_checkpoint
        self.machine = m
        self.agent = DelegationAgent(m, delay_ms=self.delay_ms, rng=self.rng)
        return m

    def _settings_changed(self, data) -> None:
        if self.machine is not None:
            self.machine.narration = data.narration
        if self.agent is not None:
            self.agent.delay = max(0, data.cpu_delay_ms) / 1000.0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def new_game(self) -> GamePhaseMachine:
        robots = player_robots()
        meta = starting_meta(robots)
        roster = RosterStore(build_roster(robots, meta.inventory, positions=self.positions), meta, self.positions)
        m = self._install(roster, ScenarioDirector(), GamePhase.HANGAR)
        m.say("A new campaign begins. Welcome to the hangar.", MessageCategory.SYSTEM)
        m.say(f"Next: {m.director.hangar_title()}", MessageCategory.HANGAR)
        logger.info("NewGame", units=len(roster.units), credits=meta.credits)
        return m

    def load_or_new(self) -> bool:
        """Resume the saved game. Returns False when a fresh game had to be started."""
        snap = self.gateway.load()
        if snap is None:
            error = self.gateway.last_error
            m = self.new_game()
            if error:
                m.say(f"Saved data was unreadable and has been discarded ({error}).", MessageCategory.SYSTEM)
            return False
        r = restore(snap, positions=self.positions)
        m = self._install(r.roster, r.director, r.phase, r.session, r.delegation)
        m.say(f"Save loaded: {m.title} ({r.phase.value}).", MessageCategory.SYSTEM)
        m.settle()
        return True

    def save(self) -> bool:
        if self.machine is None:
            return False
        return self.gateway.save(self.machine)

    def _on_checkpoint(self, reason: str) -> None:
        if not self.settings.data.autosave or self.machine is None:
            return
        if self.gateway.save(self.machine):
            self.machine.say("Progress auto-saved.", MessageCategory.SYSTEM)
            logger.debug("Checkpoint", reason=reason)

    # ------------------------------------------------------------------
    # Automation
    # ------------------------------------------------------------------
    async def step(self) -> bool:
        """Run whichever automated sequence the current phase calls for. False when idle."""
        m, agent = self.machine, self.agent
        if m is None:
            return False
        if m.phase is GamePhase.ENEMY_TURN:
            return await agent.run_enemy_turn()
        if not m.delegation_enabled:
            return False
        if m.phase is GamePhase.VICTORY:
            return await agent.run_after_victory()
        if m.phase is GamePhase.HANGAR:
            return await agent.run_hangar()
        if m.phase.is_player_turn:
            return await agent.play_step()
        return False

    async def pump(self, max_steps: int = DEFAULT_MAX_STEPS) -> int:
        steps = 0
        while steps < max_steps and await self.step():
            steps += 1
        if steps >= max_steps:
            logger.warn("StepLimitReached", steps=steps, phase=self.machine.phase.value)
        return steps

    def run_pending(self, max_steps: int = DEFAULT_MAX_STEPS) -> int:
        return asyncio.run(self.pump(max_steps))

__all__ = ["GameContext","DEFAULT_MAX_STEPS"]
