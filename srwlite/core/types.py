"""Closed enumerations shared by every layer.

Provides:
  SpiritEffect, SlotType, TerrainType, GamePhase, MessageCategory
  SLOT_RANKING_STAT: the stat auto-equip ranks items by, per slot
  CATEGORY_STYLES: rich style per message category
"""
from __future__ import annotations
from enum import Enum
from typing import Dict

class SpiritEffect(str, Enum):
    GUARANTEED_HIT = "GUARANTEED_HIT"
    GUARANTEED_EVADE = "GUARANTEED_EVADE"
    DOUBLE_DAMAGE = "DOUBLE_DAMAGE"

    @property
    def persists_through_turn(self) -> bool:
        # Evade stays armed for the enemy phase; offensive effects expire with the player turn.
        return self is SpiritEffect.GUARANTEED_EVADE

class SlotType(str, Enum):
    WEAPON = "WEAPON"
    ARMOR = "ARMOR"
    BOOSTER = "BOOSTER"

class TerrainType(str, Enum):
    SPACE = "SPACE"
    ASTEROID_FIELD = "ASTEROID_FIELD"
    COLONY_INTERIOR = "COLONY_INTERIOR"

class GamePhase(str, Enum):
    SELECT_UNIT = "SELECT_UNIT"
    ACTION = "ACTION"
    SELECT_TARGET = "SELECT_TARGET"
    ENEMY_TURN = "ENEMY_TURN"
    VICTORY = "VICTORY"
    DEFEAT = "DEFEAT"
    HANGAR = "HANGAR"
    SCENARIO_INTRO = "SCENARIO_INTRO"

    @property
    def is_player_turn(self) -> bool:
        return self in (GamePhase.SELECT_UNIT, GamePhase.ACTION, GamePhase.SELECT_TARGET)

    @property
    def is_battle(self) -> bool:
        return self.is_player_turn or self is GamePhase.ENEMY_TURN

    @property
    def is_game_over(self) -> bool:
        return self in (GamePhase.VICTORY, GamePhase.DEFEAT)

class MessageCategory(str, Enum):
    INFO = "info"
    PLAYER_ATTACK = "player_attack"
    ENEMY_ATTACK = "enemy_attack"
    DAMAGE = "damage"
    CRITICAL = "critical"
    MISS = "miss"
    NARRATION = "narration"
    SYSTEM = "system"
    SPIRIT = "spirit"
    LEVEL_UP = "level_up"
    HANGAR = "hangar"
    CPU_ACTION = "cpu_action"

SLOT_RANKING_STAT: Dict[SlotType, str] = {
    SlotType.WEAPON: "attack",
    SlotType.ARMOR: "defense",
    SlotType.BOOSTER: "mobility",
}

CATEGORY_STYLES: Dict[MessageCategory, str] = {
    MessageCategory.INFO: "white",
    MessageCategory.PLAYER_ATTACK: "bright_cyan",
    MessageCategory.ENEMY_ATTACK: "bright_red",
    MessageCategory.DAMAGE: "red",
    MessageCategory.CRITICAL: "bold yellow",
    MessageCategory.MISS: "dim",
    MessageCategory.NARRATION: "italic magenta",
    MessageCategory.SYSTEM: "bold white",
    MessageCategory.SPIRIT: "bright_magenta",
    MessageCategory.LEVEL_UP: "bold green",
    MessageCategory.HANGAR: "bright_blue",
    MessageCategory.CPU_ACTION: "cyan",
}

PHASE_LABELS: Dict[GamePhase, str] = {
    GamePhase.SELECT_UNIT: "Player Turn: Select Unit",
    GamePhase.ACTION: "Player Turn: Choose Action",
    GamePhase.SELECT_TARGET: "Player Turn: Select Target",
    GamePhase.ENEMY_TURN: "Enemy Turn",
    GamePhase.VICTORY: "Game Over: Victory",
    GamePhase.DEFEAT: "Game Over: Defeat",
    GamePhase.HANGAR: "Hangar",
    GamePhase.SCENARIO_INTRO: "Scenario Briefing",
}

__all__ = [
    "SpiritEffect","SlotType","TerrainType","GamePhase","MessageCategory",
    "SLOT_RANKING_STAT","CATEGORY_STYLES","PHASE_LABELS",
]
