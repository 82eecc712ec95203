"""Persistence of the running game to a single named blob slot.

The blob is JSON validated against ``save.schema.json`` before any field is
used. Units are never trusted verbatim: every stored unit is re-derived through
the unit factory so stats always match current definitions and equipment.
"""
from __future__ import annotations
import json, os, time
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import jsonschema

from srwlite.battle.factory import refresh_units
from srwlite.battle.models import UnitInstance
from srwlite.battle.positions import PositionGenerator
from srwlite.battle.session import BattleSession
from srwlite.core.errors import StorageError, ValidationError
from srwlite.core.logging import logger
from srwlite.core.paths import SCHEMA, HOME_SAVE_DIR
from srwlite.core.types import GamePhase, MessageCategory
from srwlite.data.loader import get_robot, get_equipment
from srwlite.game.director import ScenarioDirector
from srwlite.game.roster import RosterStore
from srwlite.inventory import PlayerMetaState

SAVE_KEY = "srwLiteGameState"
SAVE_VERSION = 1

# ---------------------------------------------------------------------------
# Blob stores
# ---------------------------------------------------------------------------
class BlobStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...

class MemoryBlobStore:
    def __init__(self):
        self.blobs: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def set(self, key: str, value: str) -> None:
        self.blobs[key] = value

    def remove(self, key: str) -> None:
        self.blobs.pop(key, None)

class FileBlobStore:
    """One ``<key>.json`` file per slot inside ``directory``."""
    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else HOME_SAVE_DIR

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(key, str(e)) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise StorageError(key, str(e)) from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(key, str(e)) from e

# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def _schema() -> Dict[str, Any]:
    return json.loads(SCHEMA.read_text(encoding="utf-8"))

def validate_blob(data: Any) -> None:
    """Schema check plus reference checks; raises ValidationError."""
    try:
        jsonschema.validate(data, _schema())
    except jsonschema.ValidationError as e:
        raise ValidationError(f"schema: {e.message}") from e
    inventory_ids = set()
    for item in data["meta"]["inventory"]:
        d = get_equipment(item["definition_id"])
        if d is None:
            raise ValidationError(f"unknown equipment {item['definition_id']}")
        if item["level"] > d.max_level:
            raise ValidationError(f"{item['instance_id']} above max level")
        if item["instance_id"] in inventory_ids:
            raise ValidationError(f"duplicate equipment instance {item['instance_id']}")
        inventory_ids.add(item["instance_id"])
    units = list(data["roster"]) + list(data.get("player_units") or []) + list(data.get("enemy_units") or [])
    for u in units:
        if get_robot(u["definition_id"]) is None:
            raise ValidationError(f"unknown robot {u['definition_id']}")
    equipped = [iid for u in data["roster"] for iid in u["equipped"].values() if iid]
    if len(equipped) != len(set(equipped)):
        raise ValidationError("equipment instance equipped twice")
    phase = GamePhase(data["phase"])
    if phase.is_battle and not (data.get("player_units") and data.get("enemy_units")):
        raise ValidationError(f"battle phase {phase.value} without unit lists")

@dataclass
class GameSnapshot:
    scenario_index: int
    ng_cycle: int
    turn: int
    meta: PlayerMetaState
    roster: List[UnitInstance]
    delegation: bool
    phase: GamePhase
    title: str
    player_units: Optional[List[UnitInstance]] = None
    enemy_units: Optional[List[UnitInstance]] = None
    version: int = SAVE_VERSION

    @classmethod
    def capture(cls, machine) -> "GameSnapshot":
        s = machine.session
        in_battle = s is not None and machine.phase.is_battle
        return cls(
            scenario_index=machine.director.cursor,
            ng_cycle=machine.director.ng_cycle,
            turn=s.turn if s is not None else 1,
            meta=machine.roster.meta.copy(),
            roster=[u.clone() for u in machine.roster.units],
            delegation=machine.delegation_enabled,
            phase=machine.phase,
            title=machine.title,
            player_units=[u.clone() for u in s.player_units] if in_battle else None,
            enemy_units=[u.clone() for u in s.enemy_units] if in_battle else None,
        )

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": self.version,
            "scenario_index": self.scenario_index,
            "ng_cycle": self.ng_cycle,
            "turn": self.turn,
            "meta": self.meta.to_dict(),
            "roster": [u.to_dict() for u in self.roster],
            "delegation": self.delegation,
            "phase": self.phase.value,
            "title": self.title,
            "saved_at": time.time(),
        }
        if self.player_units is not None:
            data["player_units"] = [u.to_dict() for u in self.player_units]
            data["enemy_units"] = [u.to_dict() for u in self.enemy_units or []]
        return data

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "GameSnapshot":
        phase = GamePhase(data["phase"])
        players = data.get("player_units") if phase.is_battle else None
        enemies = data.get("enemy_units") if phase.is_battle else None
        return cls(
            scenario_index=int(data["scenario_index"]),
            ng_cycle=int(data["ng_cycle"]),
            turn=int(data["turn"]),
            meta=PlayerMetaState.from_dict(data["meta"]),
            roster=[UnitInstance.from_dict(u) for u in data["roster"]],
            delegation=bool(data["delegation"]),
            phase=phase,
            title=str(data["title"]),
            player_units=[UnitInstance.from_dict(u) for u in players] if players is not None else None,
            enemy_units=[UnitInstance.from_dict(u) for u in enemies] if enemies is not None else None,
            version=int(data["version"]),
        )

@dataclass
class RestoredGame:
    roster: RosterStore
    director: ScenarioDirector
    phase: GamePhase
    session: Optional[BattleSession]
    delegation: bool

def restore(snapshot: GameSnapshot, *, positions: Optional[PositionGenerator] = None) -> RestoredGame:
    """Re-derive every stored unit and map the saved phase onto a resumable one.

    VICTORY commits the win (cursor + 1) and resumes in the hangar; DEFEAT resumes
    in the hangar at the same scenario. ACTION/SELECT_TARGET and SCENARIO_INTRO
    resume at SELECT_UNIT since the selection is not persisted.
    """
    meta = snapshot.meta
    roster_units = refresh_units(snapshot.roster, meta.inventory, positions=positions, reset_turn=True)
    roster = RosterStore(roster_units, meta, positions)
    director = ScenarioDirector(cursor=snapshot.scenario_index, ng_cycle=snapshot.ng_cycle)
    phase = snapshot.phase
    session: Optional[BattleSession] = None

    if phase is GamePhase.VICTORY:
        director.advance()
        phase = GamePhase.HANGAR
    elif phase is GamePhase.DEFEAT:
        phase = GamePhase.HANGAR
    elif phase in (GamePhase.ACTION, GamePhase.SELECT_TARGET, GamePhase.SCENARIO_INTRO):
        phase = GamePhase.SELECT_UNIT

    if phase.is_battle:
        players = refresh_units(snapshot.player_units or [], meta.inventory, positions=positions)
        enemies = refresh_units(snapshot.enemy_units or [], {}, snapshot.ng_cycle, positions=positions)
        session = BattleSession(director.cursor, snapshot.title, players, enemies, turn=snapshot.turn)
    else:
        roster.refresh_all(restore=True)
    return RestoredGame(roster, director, phase, session, snapshot.delegation)

# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------
class PersistenceGateway:
    def __init__(self, store: BlobStore, key: str = SAVE_KEY):
        self.store = store
        self.key = key
        self.last_error: Optional[str] = None

    def save(self, machine) -> bool:
        """Best-effort write; failures are logged and reported, never raised."""
        try:
            blob = json.dumps(GameSnapshot.capture(machine).to_json())
            self.store.set(self.key, blob)
        except Exception as e:
            self.last_error = str(e)
            logger.error("SaveFailed", key=self.key, error=str(e))
            machine.say(f"Auto-save failed: {e}", MessageCategory.SYSTEM)
            return False
        logger.info("GameSaved", key=self.key, phase=machine.phase.value, bytes=len(blob))
        return True

    def load(self) -> Optional[GameSnapshot]:
        """Validated snapshot, or None. A rejected blob is removed from the store."""
        self.last_error = None
        try:
            raw = self.store.get(self.key)
        except StorageError as e:
            self.last_error = str(e)
            logger.error("LoadFailed", key=self.key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            validate_blob(data)
            snap = GameSnapshot.from_json(data)
        except (ValueError, TypeError, KeyError, ValidationError) as e:
            self.last_error = str(e)
            logger.warn("SaveRejected", key=self.key, error=str(e))
            self.clear()
            return None
        logger.info("GameLoaded", key=self.key, phase=snap.phase.value, cycle=snap.ng_cycle)
        return snap

    def clear(self) -> None:
        try:
            self.store.remove(self.key)
        except StorageError as e:
            logger.error("ClearFailed", key=self.key, error=str(e))

__all__ = [
    "BlobStore","MemoryBlobStore","FileBlobStore","GameSnapshot","RestoredGame","PersistenceGateway",
    "restore","validate_blob","SAVE_KEY","SAVE_VERSION",
]
