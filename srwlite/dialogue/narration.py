"""Flavor text for attacks and scenario briefings.

Narration has no gameplay effect. Any object with the two ``Narrator`` methods
can replace the built-in one, including a remote text generator.
"""
from __future__ import annotations
from typing import Protocol

from srwlite.battle.models import UnitInstance

class Narrator(Protocol):
    def battle(self, attacker: UnitInstance, defender: UnitInstance, damage: int,
               is_critical: bool, is_miss: bool, defender_defeated: bool) -> str: ...
    def intro(self, scenario_title: str) -> str: ...

class MockNarrator:
    def battle(self, attacker: UnitInstance, defender: UnitInstance, damage: int,
               is_critical: bool, is_miss: bool, defender_defeated: bool) -> str:
        text = f"{attacker.pilot}'s {attacker.name} engages {defender.pilot}'s {defender.name}! "
        if is_miss:
            return text + "But the shot goes wide!"
        text += f"It deals {damage} damage."
        if is_critical:
            text += " A devastating blow!"
        if defender_defeated:
            text += f" {defender.name} goes down in flames!"
        return text

    def intro(self, scenario_title: str) -> str:
        return (f'Operation "{scenario_title}". All units, battle stations! '
                "Our fight to bring peace back to the battlefield starts now.")

__all__ = ["Narrator","MockNarrator"]
