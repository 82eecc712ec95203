"""Transient state of one active scenario.

The session holds the battle copies of every unit, the current selection, the
turn counter and the append-only message log. Unit lists are replaced wholesale
(``replace_unit``) rather than edited in place.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Callable

from srwlite.core.types import MessageCategory
from .models import UnitInstance

@dataclass(frozen=True)
class BattleMessage:
    text: str
    category: MessageCategory = MessageCategory.INFO

class BattleSession:
    def __init__(self, scenario_index: int, title: str, player_units: List[UnitInstance],
                 enemy_units: List[UnitInstance], *, turn: int = 1):
        self.scenario_index = scenario_index
        self.title = title
        self.player_units: List[UnitInstance] = list(player_units)
        self.enemy_units: List[UnitInstance] = list(enemy_units)
        self.turn = turn
        self.selected_unit_id: Optional[str] = None
        self.selected_target_id: Optional[str] = None
        self.log: List[BattleMessage] = []

    # Lookup ---------------------------------------------------------------
    def find(self, instance_id: Optional[str]) -> Optional[UnitInstance]:
        if not instance_id:
            return None
        for u in self.player_units + self.enemy_units:
            if u.instance_id == instance_id:
                return u
        return None

    def selected_unit(self) -> Optional[UnitInstance]:
        return self.find(self.selected_unit_id)

    def living_players(self) -> List[UnitInstance]:
        return [u for u in self.player_units if u.is_alive]

    def living_enemies(self) -> List[UnitInstance]:
        return [u for u in self.enemy_units if u.is_alive]

    def all_players_acted(self) -> bool:
        return all(u.has_acted for u in self.living_players())

    def players_defeated(self) -> bool:
        return bool(self.player_units) and not self.living_players()

    def enemies_defeated(self) -> bool:
        return bool(self.enemy_units) and not self.living_enemies()

    # Copy-on-write mutation ------------------------------------------------
    def replace_unit(self, unit: UnitInstance) -> None:
        """Swap in ``unit`` by id, building a new list for the side it belongs to."""
        if unit.is_player:
            self.player_units = [unit if u.instance_id == unit.instance_id else u for u in self.player_units]
        else:
            self.enemy_units = [unit if u.instance_id == unit.instance_id else u for u in self.enemy_units]

    def map_units(self, fn: Callable[[UnitInstance], UnitInstance], *, players: bool = True, enemies: bool = True) -> None:
        if players:
            self.player_units = [fn(u) for u in self.player_units]
        if enemies:
            self.enemy_units = [fn(u) for u in self.enemy_units]

    def clear_selection(self) -> None:
        self.selected_unit_id = None
        self.selected_target_id = None

__all__ = ["BattleSession","BattleMessage"]
