"""Scenario sequencing and NG+ cycles."""
from __future__ import annotations
from typing import Optional, Sequence, Tuple, List

from srwlite.battle.factory import deploy_enemies
from srwlite.battle.models import UnitInstance
from srwlite.battle.positions import PositionGenerator
from srwlite.core.logging import logger
from srwlite.data.definitions import ScenarioDefinition
from srwlite.data.loader import scenario_list

class ScenarioDirector:
    def __init__(self, scenarios: Optional[Sequence[ScenarioDefinition]] = None, *, cursor: int = 0, ng_cycle: int = 0):
        self.scenarios: Tuple[ScenarioDefinition, ...] = tuple(scenarios if scenarios is not None else scenario_list())
        self.cursor = max(0, cursor)
        self.ng_cycle = max(0, ng_cycle)

    @property
    def past_end(self) -> bool:
        return self.cursor >= len(self.scenarios)

    def current(self) -> Optional[ScenarioDefinition]:
        if self.past_end:
            return None
        return self.scenarios[self.cursor]

    def advance(self) -> None:
        self.cursor += 1

    def begin(self) -> Tuple[ScenarioDefinition, bool]:
        """Scenario to start now; rolls into the next NG+ cycle when past the end.

        Returns the scenario and whether a new cycle was entered.
        """
        new_cycle = False
        if self.past_end:
            self.ng_cycle += 1
            self.cursor = 0
            new_cycle = True
            logger.info("NewGamePlus", cycle=self.ng_cycle)
        return self.scenarios[self.cursor], new_cycle

    def cycle_suffix(self, cycle: Optional[int] = None) -> str:
        c = self.ng_cycle if cycle is None else cycle
        return f" (NG+ {c})" if c > 0 else ""

    def hangar_title(self) -> str:
        if self.past_end:
            return f"All scenarios cleared! Next: NG+ {self.ng_cycle + 1}"
        return f"{self.scenarios[self.cursor].title}{self.cycle_suffix()}"

    def deploy(self, scenario: ScenarioDefinition, positions: Optional[PositionGenerator] = None) -> List[UnitInstance]:
        return deploy_enemies(scenario, self.ng_cycle, positions=positions)

__all__ = ["ScenarioDirector"]
