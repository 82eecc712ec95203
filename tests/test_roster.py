from srwlite.battle.factory import build_roster, create_or_refresh, deploy_enemies, refresh_units
from srwlite.battle.models import EquipmentInstance
from srwlite.battle.positions import FixedPositions
from srwlite.core.types import SlotType
from srwlite.data.loader import get_robot, player_robots, scenario_list
from srwlite.game.roster import RosterStore
from srwlite.inventory import INITIAL_CREDITS, starting_meta

def _store():
    robots = player_robots()
    meta = starting_meta(robots)
    units = build_roster(robots, meta.inventory, positions=FixedPositions())
    return RosterStore(units, meta, FixedPositions())

def test_starting_roster_auto_equips_defaults_exclusively():
    store = _store()
    gundam, fazz, hyaku = store.units
    assert store.is_exclusive()
    assert store.meta.credits == INITIAL_CREDITS
    assert store.meta.get(gundam.equipped[SlotType.WEAPON]).definition_id == "eq_beam_rifle_std"
    assert store.meta.get(fazz.equipped[SlotType.BOOSTER]).definition_id == "eq_standard_booster"
    assert hyaku.equipped[SlotType.BOOSTER] is not None
    assert gundam.effective.hp == 12500 and gundam.current_hp == 12500

def test_batch_construction_never_shares_an_instance():
    gundam = get_robot("rx-78-2-gundam")
    inv = {"w": EquipmentInstance("w", "eq_beam_rifle_std", 1)}
    a, b = build_roster([gundam, gundam], inv, positions=FixedPositions())
    assert a.equipped[SlotType.WEAPON] == "w"
    assert b.equipped[SlotType.WEAPON] is None

def test_refresh_keeps_identity_and_progress():
    store = _store()
    u = store.units[0].clone(level=4, current_xp=30, current_hp=100)
    out = create_or_refresh(get_robot(u.definition_id), True, store.meta.inventory, 0, u,
                            positions=FixedPositions())
    assert out.instance_id == u.instance_id
    assert out.level == 4 and out.current_xp == 30
    assert out.equipped == u.equipped
    assert out.base.hp == 12000 + 3 * 500
    # raised maximums add their difference to the pools
    assert out.current_hp == 100 + 1500

def test_refresh_clamps_when_equipment_vanishes():
    store = _store()
    u = store.units[0]
    [out] = refresh_units([u], {}, positions=FixedPositions())
    assert out.effective.hp == 12000
    assert out.current_hp == 12000

def test_refresh_drops_unknown_definitions():
    store = _store()
    ghost = store.units[0].clone(definition_id="not-a-robot")
    assert refresh_units([ghost], store.meta.inventory) == []

def test_enemies_deploy_unequipped_and_scaled():
    scenario = scenario_list()[0]
    enemies = deploy_enemies(scenario, 1, positions=FixedPositions())
    assert len(enemies) == len(scenario.enemies)
    zaku = enemies[0]
    assert not zaku.is_player
    assert zaku.equipped_ids() == ()
    assert zaku.effective.hp == 8800 and zaku.current_hp == 8800

def test_equip_moves_item_between_units():
    store = _store()
    gundam, fazz, _ = store.units
    cannon = fazz.equipped[SlotType.WEAPON]
    ok, _ = store.equip(gundam.instance_id, SlotType.WEAPON, cannon)
    assert ok
    gundam, fazz, _ = store.units
    assert gundam.equipped[SlotType.WEAPON] == cannon
    assert fazz.equipped[SlotType.WEAPON] is None
    assert gundam.effective.attack == 2200 + 500
    assert fazz.effective.attack == 2800
    assert store.is_exclusive()

def test_equip_rejects_wrong_slot_and_unknown_ids():
    store = _store()
    gundam = store.units[0]
    armor = gundam.equipped[SlotType.ARMOR]
    ok, msg = store.equip(gundam.instance_id, SlotType.WEAPON, armor)
    assert not ok and "does not fit" in msg
    assert store.equip("nobody", SlotType.WEAPON, None)[0] is False
    assert store.equip(gundam.instance_id, SlotType.WEAPON, "inst_missing")[0] is False

def test_unequip_clears_slot_and_recomputes():
    store = _store()
    gundam = store.units[0]
    ok, _ = store.equip(gundam.instance_id, SlotType.ARMOR, None)
    assert ok
    gundam = store.units[0]
    assert gundam.equipped[SlotType.ARMOR] is None
    assert gundam.effective.hp == 12000 and gundam.current_hp == 12000
    assert store.equip(gundam.instance_id, SlotType.ARMOR, None)[0] is False

def test_upgrade_spends_credits_and_grows_holder():
    store = _store()
    gundam = store.units[0]
    armor = gundam.equipped[SlotType.ARMOR]
    ok, _ = store.upgrade(armor)
    assert ok
    assert store.meta.credits == INITIAL_CREDITS - 400
    assert store.meta.get(armor).level == 2
    gundam = store.units[0]
    assert gundam.effective.hp == 12600
    assert gundam.current_hp == 12600
    assert store.meta.upgrade_cost(armor) == 600

def test_upgrade_rejects_max_level_and_poor_players():
    store = _store()
    rifle = store.units[0].equipped[SlotType.WEAPON]
    store.meta.get(rifle).level = 5
    ok, msg = store.upgrade(rifle)
    assert not ok and "max level" in msg
    store.meta.get(rifle).level = 1
    store.meta.credits = 10
    ok, msg = store.upgrade(rifle)
    assert not ok and "Not enough credits" in msg
    assert store.meta.credits == 10
    assert store.meta.get(rifle).level == 1

def test_reconcile_mirrors_battle_progress():
    store = _store()
    battle_copy = store.units[0].clone(current_xp=40, current_hp=9000, has_acted=True)
    out = store.reconcile(battle_copy)
    assert out.current_xp == 40 and out.current_hp == 9000
    assert not out.has_acted
    assert store.units[0].current_hp == 9000
