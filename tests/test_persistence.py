import json
import random

import pytest

from srwlite.battle.positions import FixedPositions
from srwlite.core.errors import StorageError, ValidationError
from srwlite.core.types import GamePhase, SlotType
from srwlite.game.context import GameContext
from srwlite.system.save import (
    SAVE_KEY, FileBlobStore, GameSnapshot, MemoryBlobStore, validate_blob,
)

def _reopen(settings, store):
    c = GameContext(settings, store, rng=random.Random(1), positions=FixedPositions(), delay_ms=0)
    return c, c.load_or_new()

def _units(units):
    return [(u.instance_id, u.level, u.current_xp, u.current_hp, u.current_sp, u.has_acted, dict(u.equipped))
            for u in units]

def test_mid_battle_round_trip(ctx, settings, store):
    m = ctx.machine
    m.start_scenario()
    s = m.session
    assert m.select_unit(s.player_units[0].instance_id)
    assert m.choose_wait()
    s.replace_unit(s.enemy_units[1].clone(current_hp=1234))
    assert ctx.save()

    c2, loaded = _reopen(settings, store)
    assert loaded
    m2 = c2.machine
    assert m2.phase is GamePhase.SELECT_UNIT
    assert m2.session.turn == 1
    assert m2.title == "First Contact"
    assert _units(m2.session.player_units) == _units(s.player_units)
    assert _units(m2.session.enemy_units) == _units(s.enemy_units)
    assert _units(m2.roster.units) == _units(m.roster.units)
    assert m2.roster.meta.to_dict() == m.roster.meta.to_dict()
    assert m2.director.cursor == 0 and m2.director.ng_cycle == 0

def test_selection_phases_resume_at_unit_selection(ctx, settings, store):
    m = ctx.machine
    m.start_scenario()
    assert m.select_unit(m.session.player_units[0].instance_id)
    assert m.choose_attack()
    assert ctx.save()
    c2, _ = _reopen(settings, store)
    assert c2.machine.phase is GamePhase.SELECT_UNIT
    assert c2.machine.session.selected_unit_id is None

def test_victory_save_commits_the_win(ctx, settings, store):
    m = ctx.machine
    m.start_scenario()
    m.session.map_units(lambda u: u.clone(current_hp=0), players=False)
    assert m.check_outcome() is GamePhase.VICTORY
    assert json.loads(store.get(SAVE_KEY))["phase"] == "VICTORY"
    c2, loaded = _reopen(settings, store)
    assert loaded
    assert c2.machine.phase is GamePhase.HANGAR
    assert c2.machine.director.cursor == 1
    assert c2.machine.session is None

def test_hangar_save_keeps_loadout(ctx, settings, store):
    m = ctx.machine
    gundam = m.roster.units[0]
    assert m.equip_item(gundam.instance_id, SlotType.ARMOR, None)
    assert ctx.save()
    c2, _ = _reopen(settings, store)
    assert c2.machine.phase is GamePhase.HANGAR
    assert c2.machine.roster.units[0].equipped[SlotType.ARMOR] is None
    assert c2.machine.roster.units[0].effective.hp == 12000

def test_corrupt_blob_cold_starts(settings):
    store = MemoryBlobStore()
    store.set(SAVE_KEY, "{not json")
    c, loaded = _reopen(settings, store)
    assert not loaded
    assert c.machine.phase is GamePhase.HANGAR
    assert c.machine.director.cursor == 0
    assert SAVE_KEY not in store.blobs
    assert any("discarded" in msg.text for msg in c.machine.messages)

def test_unknown_robot_is_rejected(ctx, settings, store):
    assert ctx.save()
    data = json.loads(store.get(SAVE_KEY))
    data["roster"][0]["definition_id"] = "rx-0-unicorn"
    with pytest.raises(ValidationError):
        validate_blob(data)
    store.set(SAVE_KEY, json.dumps(data))
    _, loaded = _reopen(settings, store)
    assert not loaded

def test_double_equipped_item_is_rejected(ctx, store):
    assert ctx.save()
    data = json.loads(store.get(SAVE_KEY))
    shared = data["roster"][0]["equipped"]["WEAPON"]
    data["roster"][1]["equipped"]["WEAPON"] = shared
    with pytest.raises(ValidationError):
        validate_blob(data)

def test_schema_violation_is_rejected(ctx, store):
    assert ctx.save()
    data = json.loads(store.get(SAVE_KEY))
    data["meta"]["credits"] = "lots"
    with pytest.raises(ValidationError):
        validate_blob(data)

def test_battle_phase_without_units_is_rejected(ctx, store):
    assert ctx.save()
    data = json.loads(store.get(SAVE_KEY))
    data["phase"] = "SELECT_UNIT"
    with pytest.raises(ValidationError):
        validate_blob(data)

def test_failed_write_is_reported_not_raised(ctx):
    class BrokenStore(MemoryBlobStore):
        def set(self, key, value):
            raise StorageError(key, "disk full")
    ctx.gateway.store = BrokenStore()
    m = ctx.machine
    assert not ctx.save()
    assert m.phase is GamePhase.HANGAR
    assert any("Auto-save failed" in msg.text for msg in m.messages)

def test_snapshot_json_is_stable(ctx):
    snap = GameSnapshot.capture(ctx.machine)
    again = GameSnapshot.from_json(json.loads(json.dumps(snap.to_json())))
    assert again.phase is GamePhase.HANGAR
    assert [u.instance_id for u in again.roster] == [u.instance_id for u in snap.roster]
    assert again.player_units is None

def test_file_store(tmp_path):
    fs = FileBlobStore(tmp_path / "saves")
    assert fs.get(SAVE_KEY) is None
    fs.set(SAVE_KEY, "{}")
    assert fs.get(SAVE_KEY) == "{}"
    assert (tmp_path / "saves" / f"{SAVE_KEY}.json").exists()
    fs.remove(SAVE_KEY)
    assert fs.get(SAVE_KEY) is None
