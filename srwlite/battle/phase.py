"""Game phase state machine and the command surface shared by humans and the CPU.

Every command is a single atomic step that returns True when applied and False
when its preconditions do not hold. Rejections never raise; human-driven ones
leave an INFO (or HANGAR) message, delegation-driven ones pass ``silent=True``.

Flow inside a battle:

  SELECT_UNIT --select--> ACTION --attack--> SELECT_TARGET --confirm--> SELECT_UNIT
                              \\--wait--> SELECT_UNIT
  (all living players acted) -> ENEMY_TURN -> enemy steps -> SELECT_UNIT (turn + 1)
  any mutation may end the battle in VICTORY or DEFEAT; only return_to_hangar leaves them.
"""
from __future__ import annotations
import random
from typing import Callable, List, Optional

from srwlite.core.logging import logger
from srwlite.core.types import GamePhase, MessageCategory, SlotType
from srwlite.data.loader import get_robot, get_spirit, terrain_bonus
from srwlite.inventory import defeat_reward
from .ai import lowest_hp
from .experience import apply_experience
from .factory import refresh_units
from .mechanics import resolve_attack, AttackOutcome
from .models import UnitInstance
from .positions import PositionGenerator, RandomPositions, terrain_for
from .session import BattleSession, BattleMessage
from .stats import clamp_pools

SP_REGEN_PER_TURN = 5
MESSAGE_LOG_LIMIT = 200

class GamePhaseMachine:
    def __init__(self, roster, director, *, rng: Optional[random.Random] = None,
                 positions: Optional[PositionGenerator] = None, narrator=None,
                 narration: bool = False, phase: GamePhase = GamePhase.HANGAR):
        self.roster = roster
        self.director = director
        self.rng = rng or random.Random()
        self.positions = positions or RandomPositions(self.rng)
        self.narrator = narrator
        self.narration = narration
        self.phase = phase
        self.session: Optional[BattleSession] = None
        self.messages: List[BattleMessage] = []
        self.delegation_enabled = False
        self.hangar_automation_ran = False
        # Bumped whenever a battle session is created or torn down.
        self.epoch = 0
        self.on_checkpoint: Optional[Callable[[str], None]] = None

    # ------------------------------------------------------------------
    # Messages & helpers
    # ------------------------------------------------------------------
    def say(self, text: str, category: MessageCategory = MessageCategory.INFO) -> None:
        msg = BattleMessage(text, category)
        self.messages.append(msg)
        if len(self.messages) > MESSAGE_LOG_LIMIT:
            del self.messages[:-MESSAGE_LOG_LIMIT]
        if self.session is not None:
            self.session.log.append(msg)
        logger.debug("Message", category=category.value, text=text)

    def _reject(self, reason: str, silent: bool, category: MessageCategory = MessageCategory.INFO) -> bool:
        if not silent:
            self.say(reason, category)
        logger.debug("CommandRejected", phase=self.phase.value, reason=reason)
        return False

    def _checkpoint(self, reason: str) -> None:
        if self.on_checkpoint is not None:
            self.on_checkpoint(reason)

    @property
    def inventory(self):
        return self.roster.meta.inventory

    @property
    def title(self) -> str:
        if self.session is not None:
            return self.session.title
        return self.director.hangar_title()

    def _battle_ready(self) -> bool:
        return self.session is not None and self.phase.is_player_turn

    # ------------------------------------------------------------------
    # Outcome detection
    # ------------------------------------------------------------------
    def check_outcome(self) -> GamePhase:
        """Enter VICTORY/DEFEAT if a side has no living units. Safe to call repeatedly."""
        s = self.session
        if s is None or self.phase.is_game_over or not self.phase.is_battle:
            return self.phase
        if s.players_defeated():
            self._enter_game_over(GamePhase.DEFEAT)
        elif s.enemies_defeated():
            self._enter_game_over(GamePhase.VICTORY)
        return self.phase

    def _enter_game_over(self, phase: GamePhase) -> None:
        s = self.session
        self.phase = phase
        s.clear_selection()
        for u in s.player_units:
            self.roster.reconcile(u)
        if phase is GamePhase.VICTORY:
            self.say(f"Victory! {s.title} cleared.", MessageCategory.SYSTEM)
        else:
            self.say("Defeat... all units have been lost.", MessageCategory.SYSTEM)
        logger.info("BattleEnded", result=phase.value, title=s.title, turn=s.turn)
        self._checkpoint(phase.value.lower())

    def _after_player_action(self) -> None:
        if self.check_outcome().is_game_over:
            return
        s = self.session
        if self.phase in (GamePhase.SELECT_UNIT, GamePhase.ACTION) and s.all_players_acted():
            self._begin_enemy_turn()

    def settle(self) -> GamePhase:
        """Re-run outcome detection and the turn hand-off after state was replaced wholesale (e.g. a load)."""
        if self.session is not None and self.phase.is_battle:
            self._after_player_action()
        return self.phase

    def _begin_enemy_turn(self) -> None:
        self.session.clear_selection()
        self.phase = GamePhase.ENEMY_TURN
        self.say("--- Enemy Turn ---", MessageCategory.SYSTEM)

    # ------------------------------------------------------------------
    # Player turn commands
    # ------------------------------------------------------------------
    def select_unit(self, unit_id: str, *, silent: bool = False) -> bool:
        if not self._battle_ready() or self.phase is not GamePhase.SELECT_UNIT:
            return self._reject("Select a unit during the player turn.", silent)
        unit = self.session.find(unit_id)
        if unit is None or not unit.is_player:
            return self._reject("That is not one of your units.", silent)
        if not unit.is_alive:
            return self._reject(f"{unit.name} has been destroyed.", silent)
        if unit.has_acted:
            return self._reject(f"{unit.name} has already acted this turn.", silent)
        self.session.selected_unit_id = unit.instance_id
        self.session.selected_target_id = None
        self.phase = GamePhase.ACTION
        self.say(f"{unit.name} ({unit.pilot}) selected.", MessageCategory.INFO)
        return True

    def choose_attack(self, *, silent: bool = False) -> bool:
        if self.phase is not GamePhase.ACTION or self.session is None:
            return self._reject("Select a unit before choosing an action.", silent)
        if not self.session.living_enemies():
            return self._reject("No targets remain.", silent)
        self.phase = GamePhase.SELECT_TARGET
        self.say("Choose a target.", MessageCategory.INFO)
        return True

    def choose_wait(self, *, silent: bool = False) -> bool:
        if self.phase is not GamePhase.ACTION or self.session is None:
            return self._reject("Select a unit before choosing an action.", silent)
        unit = self.session.selected_unit()
        if unit is None:
            return self._reject("No unit selected.", silent)
        keep = unit.active_effect if unit.active_effect and unit.active_effect.persists_through_turn else None
        self.session.replace_unit(unit.clone(has_acted=True, active_effect=keep))
        self.session.clear_selection()
        self.phase = GamePhase.SELECT_UNIT
        self.say(f"{unit.name} stands by.", MessageCategory.INFO)
        self._after_player_action()
        return True

    def cancel(self, *, silent: bool = False) -> bool:
        """Step back from target selection to the action menu, or from the menu to unit selection."""
        if self.phase is GamePhase.SELECT_TARGET:
            self.phase = GamePhase.ACTION
            return True
        if self.phase is GamePhase.ACTION:
            self.session.clear_selection()
            self.phase = GamePhase.SELECT_UNIT
            return True
        return self._reject("Nothing to cancel.", silent)

    def activate_spirit(self, spirit_id: str, *, silent: bool = False) -> bool:
        if self.phase is not GamePhase.ACTION or self.session is None:
            return self._reject("Spirit commands are used from the action menu.", silent)
        unit = self.session.selected_unit()
        if unit is None:
            return self._reject("No unit selected.", silent)
        d = get_robot(unit.definition_id)
        spirit = get_spirit(spirit_id)
        if spirit is None or d is None or spirit_id not in d.spirits:
            return self._reject(f"{unit.name} cannot use that spirit command.", silent)
        if unit.active_effect is not None:
            return self._reject(f"{unit.name} already has a spirit effect active.", silent)
        if unit.current_sp < spirit.cost:
            return self._reject(f"Not enough SP for {spirit.name} (need {spirit.cost}, have {unit.current_sp}).", silent)
        updated = unit.clone(current_sp=unit.current_sp - spirit.cost, active_effect=spirit.effect)
        self.session.replace_unit(updated)
        self.roster.reconcile(updated)
        self.say(f"{unit.name} uses {spirit.name}! ({spirit.description})", MessageCategory.SPIRIT)
        return True

    def select_target(self, target_id: str, *, silent: bool = False) -> bool:
        """Pick an enemy and resolve the selected unit's attack against it."""
        if self.phase is not GamePhase.SELECT_TARGET or self.session is None:
            return self._reject("Choose Attack before picking a target.", silent)
        s = self.session
        attacker = s.selected_unit()
        target = s.find(target_id)
        if attacker is None or not attacker.can_act:
            return self._reject("The selected unit cannot attack.", silent)
        if target is None or target.is_player or not target.is_alive:
            return self._reject("Pick a living enemy unit.", silent)
        s.selected_target_id = target.instance_id

        outcome = resolve_attack(attacker, target, attacker.active_effect, target.active_effect,
                                 terrain_bonus(target.terrain), self.rng)
        self._report(outcome, MessageCategory.PLAYER_ATTACK)
        updated_attacker, updated_target = self._apply_outcome(attacker, target, outcome)
        updated_attacker.has_acted = True

        if outcome.xp_gained:
            before = updated_attacker.level
            apply_experience(updated_attacker, outcome.xp_gained, self.inventory)
            self.say(f"{updated_attacker.name} gains {outcome.xp_gained} XP.", MessageCategory.INFO)
            if updated_attacker.level > before:
                self.say(f"{updated_attacker.name} reached level {updated_attacker.level}! HP/EN/SP fully restored.",
                         MessageCategory.LEVEL_UP)
        if outcome.defender_defeated:
            reward = defeat_reward(self.director.ng_cycle)
            self.roster.meta.add_credits(reward)
            self.say(f"Earned {reward} credits. (Total: {self.roster.meta.credits})", MessageCategory.SYSTEM)

        s.replace_unit(updated_attacker)
        s.replace_unit(updated_target)
        self.roster.reconcile(updated_attacker)
        self._narrate(updated_attacker, updated_target, outcome)
        s.clear_selection()
        self.phase = GamePhase.SELECT_UNIT
        self._after_player_action()
        return True

    def end_player_turn(self, *, silent: bool = False) -> bool:
        if not self._battle_ready():
            return self._reject("It is not the player turn.", silent)
        self.session.map_units(lambda u: u.clone(has_acted=True) if u.is_alive else u, enemies=False)
        self.say("Player turn ended.", MessageCategory.INFO)
        self._begin_enemy_turn()
        return True

    # ------------------------------------------------------------------
    # Attack application
    # ------------------------------------------------------------------
    def _report(self, outcome: AttackOutcome, attack_category: MessageCategory) -> None:
        if outcome.is_miss:
            category = MessageCategory.MISS
        elif outcome.is_critical:
            category = MessageCategory.CRITICAL
        else:
            category = attack_category
        for line in outcome.log:
            self.say(line, category)

    def _apply_outcome(self, attacker: UnitInstance, defender: UnitInstance, outcome: AttackOutcome):
        a = attacker.clone()
        d = defender.clone(current_hp=outcome.defender_hp_after)
        if outcome.attacker_effect_consumed:
            a.active_effect = None
        if outcome.defender_effect_consumed:
            d.active_effect = None
        clamp_pools(d)
        return a, d

    def _narrate(self, attacker: UnitInstance, defender: UnitInstance, outcome: AttackOutcome) -> None:
        if not self.narration or self.narrator is None:
            return
        text = self.narrator.battle(attacker, defender, outcome.damage, outcome.is_critical,
                                    outcome.is_miss, outcome.defender_defeated)
        if text:
            self.say(text, MessageCategory.NARRATION)

    # ------------------------------------------------------------------
    # Enemy turn (stepped so automation can pause between attacks)
    # ------------------------------------------------------------------
    def next_enemy(self) -> Optional[UnitInstance]:
        if self.phase is not GamePhase.ENEMY_TURN or self.session is None:
            return None
        for u in self.session.enemy_units:
            if u.can_act:
                return u
        return None

    def enemy_step(self) -> bool:
        """One enemy attacks the weakest living player unit. False when nobody is left to act."""
        enemy = self.next_enemy()
        if enemy is None:
            return False
        s = self.session
        target = lowest_hp(s.player_units)
        if target is None:
            s.replace_unit(enemy.clone(has_acted=True))
            self.check_outcome()
            return True
        # Enemies never spend spirit commands.
        outcome = resolve_attack(enemy, target, None, target.active_effect,
                                 terrain_bonus(target.terrain), self.rng)
        self._report(outcome, MessageCategory.ENEMY_ATTACK)
        updated_enemy, updated_target = self._apply_outcome(enemy, target, outcome)
        updated_enemy.has_acted = True
        s.replace_unit(updated_enemy)
        s.replace_unit(updated_target)
        self.roster.reconcile(updated_target)
        self._narrate(updated_enemy, updated_target, outcome)
        self.check_outcome()
        return True

    def finish_enemy_turn(self) -> bool:
        """Hand control back to the player: SP regen, effect expiry, repositioning, turn + 1."""
        if self.phase is not GamePhase.ENEMY_TURN or self.session is None:
            return False
        if self.check_outcome().is_game_over:
            return False
        s = self.session

        def _new_turn(u: UnitInstance) -> UnitInstance:
            if not u.is_alive:
                return u.clone(has_acted=False, active_effect=None)
            keep = u.active_effect if u.active_effect and u.active_effect.persists_through_turn else None
            pos = self.positions.place(u.is_player)
            out = u.clone(has_acted=False, active_effect=keep, position=pos, terrain=terrain_for(pos[1]))
            if u.is_player:
                out.current_sp = u.current_sp + SP_REGEN_PER_TURN
                clamp_pools(out)
            return out

        s.map_units(_new_turn)
        for u in s.player_units:
            self.roster.reconcile(u)
        s.turn += 1
        s.clear_selection()
        self.phase = GamePhase.SELECT_UNIT
        self.say(f"--- Player Turn {s.turn} ---", MessageCategory.SYSTEM)
        self._checkpoint("turn")
        return True

    def run_enemy_turn(self) -> GamePhase:
        """Play the whole enemy turn without pauses."""
        while self.enemy_step():
            if self.phase.is_game_over:
                return self.phase
        self.finish_enemy_turn()
        return self.phase

    # ------------------------------------------------------------------
    # Hangar & lifecycle commands
    # ------------------------------------------------------------------
    def equip_item(self, unit_id: str, slot: SlotType, instance_id: Optional[str], *, silent: bool = False) -> bool:
        if self.phase is not GamePhase.HANGAR:
            return self._reject("Equipment can only be changed in the hangar.", silent, MessageCategory.HANGAR)
        ok, message = self.roster.equip(unit_id, slot, instance_id)
        if not ok:
            return self._reject(message, silent, MessageCategory.HANGAR)
        self.say(message, MessageCategory.HANGAR)
        return True

    def upgrade_item(self, instance_id: str, *, silent: bool = False) -> bool:
        if self.phase is not GamePhase.HANGAR:
            return self._reject("Equipment can only be upgraded in the hangar.", silent, MessageCategory.HANGAR)
        ok, message = self.roster.upgrade(instance_id)
        if not ok:
            return self._reject(message, silent, MessageCategory.HANGAR)
        self.say(message, MessageCategory.HANGAR)
        return True

    def start_scenario(self, *, silent: bool = False) -> bool:
        if self.phase is not GamePhase.HANGAR:
            return self._reject("Scenarios are launched from the hangar.", silent, MessageCategory.HANGAR)
        # Each sortie starts with a fresh log.
        self.messages.clear()
        scenario, new_cycle = self.director.begin()
        if new_cycle:
            self.roster.refresh_all(restore=True)
            self.say(f"Starting NG+ cycle {self.director.ng_cycle}! All units fully restored.", MessageCategory.SYSTEM)
        players = refresh_units(self.roster.units, self.inventory, positions=self.positions,
                                reset_turn=True, reposition=True)
        enemies = self.director.deploy(scenario, self.positions)
        title = f"{scenario.title}{self.director.cycle_suffix()}"
        self.epoch += 1
        self.session = BattleSession(self.director.cursor, title, players, enemies)
        self.phase = GamePhase.SCENARIO_INTRO
        cycle_text = "First cycle" if self.director.ng_cycle == 0 else f"NG+ cycle {self.director.ng_cycle}"
        self.say(f"Scenario {self.director.cursor + 1}: {title} ({cycle_text})", MessageCategory.SYSTEM)
        self.say(scenario.description, MessageCategory.INFO)
        if self.narrator is not None:
            self.say(self.narrator.intro(scenario.title), MessageCategory.NARRATION)
        logger.info("ScenarioStarted", title=scenario.title, cursor=self.director.cursor,
                    cycle=self.director.ng_cycle, enemies=len(enemies))
        self.phase = GamePhase.SELECT_UNIT
        self.say(f"--- Player Turn {self.session.turn} ---", MessageCategory.SYSTEM)
        self.check_outcome()
        return True

    def toggle_delegation(self) -> bool:
        self.delegation_enabled = not self.delegation_enabled
        if self.delegation_enabled and self.phase is GamePhase.HANGAR:
            self.hangar_automation_ran = False
        state = "enabled" if self.delegation_enabled else "disabled"
        self.say(f"Delegation mode {state}.", MessageCategory.SYSTEM)
        logger.info("DelegationToggled", enabled=self.delegation_enabled)
        return True

    def return_to_hangar(self, *, silent: bool = False) -> bool:
        """Tear down the battle session and restore the roster.

        Leaving after a victory commits the win by advancing the scenario cursor.
        """
        if self.phase is GamePhase.HANGAR:
            return self._reject("Already in the hangar.", silent, MessageCategory.HANGAR)
        if self.session is not None:
            for u in self.session.player_units:
                self.roster.reconcile(u)
        if self.phase is GamePhase.VICTORY:
            self.director.advance()
        self.enter_hangar()
        self.say(f"Returned to the hangar. Next: {self.director.hangar_title()}", MessageCategory.HANGAR)
        self._checkpoint("hangar")
        return True

    def enter_hangar(self) -> None:
        """Drop any battle session, fully restore the roster and open the hangar."""
        self.session = None
        self.epoch += 1
        self.roster.refresh_all(restore=True)
        self.phase = GamePhase.HANGAR
        self.hangar_automation_ran = False

__all__ = ["GamePhaseMachine","SP_REGEN_PER_TURN","MESSAGE_LOG_LIMIT"]
