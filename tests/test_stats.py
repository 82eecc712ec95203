from srwlite.battle.experience import apply_experience
from srwlite.battle.models import EquipmentInstance, StatBlock
from srwlite.battle.stats import apply_ng_plus_scaling, compute_effective_stats, recompute
from srwlite.core.rng import round_half_up
from srwlite.core.types import SlotType

def _inv(*items):
    return {i.instance_id: i for i in items}

def test_effective_stats_add_equipment_bonuses():
    base = StatBlock(12000, 150, 100, 2200, 1500, 120)
    inv = _inv(EquipmentInstance("w", "eq_beam_rifle_std", 3), EquipmentInstance("a", "eq_standard_armor", 1))
    eff = compute_effective_stats(base, {SlotType.WEAPON: "w", SlotType.ARMOR: "a", SlotType.BOOSTER: None}, inv)
    assert eff.attack == 2200 + 150 + 2 * 30
    assert eff.defense == 1600
    assert eff.hp == 12500
    assert eff.mobility == 120

def test_missing_equipment_is_skipped():
    base = StatBlock(1000, 10, 10, 100, 100, 10)
    inv = _inv(EquipmentInstance("x", "eq_not_a_thing", 1))
    eff = compute_effective_stats(base, {SlotType.WEAPON: "gone", SlotType.ARMOR: "x", SlotType.BOOSTER: None}, inv)
    assert eff == base

def test_ng_plus_scaling_only_touches_hp_attack_defense():
    base = StatBlock(8000, 100, 60, 1800, 1200, 90)
    assert apply_ng_plus_scaling(base, 0) == base
    scaled = apply_ng_plus_scaling(base, 2)
    assert (scaled.hp, scaled.attack, scaled.defense) == (9600, 2160, 1440)
    assert (scaled.en, scaled.sp, scaled.mobility) == (100, 60, 90)

def test_round_half_up_rounds_halves_upward():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4

def test_recompute_gains_raised_maximum_and_clamps_lowered(make_unit):
    u = make_unit("rx-78-2-gundam", current_hp=10000)
    inv = _inv(EquipmentInstance("a", "eq_heavy_armor", 1))
    u.equipped[SlotType.ARMOR] = "a"
    recompute(u, inv)
    assert u.effective.hp == 13500
    assert u.current_hp == 11500
    u.equipped[SlotType.ARMOR] = None
    recompute(u, inv)
    assert u.effective.hp == 12000
    assert u.current_hp == 11500

def test_dead_unit_stays_dead_on_recompute(make_unit):
    u = make_unit("rx-78-2-gundam", current_hp=0)
    inv = _inv(EquipmentInstance("a", "eq_heavy_armor", 1))
    u.equipped[SlotType.ARMOR] = "a"
    recompute(u, inv)
    assert u.current_hp == 0

def test_experience_crosses_multiple_levels(make_unit):
    u = make_unit("rx-78-2-gundam", current_hp=5)
    result = apply_experience(u, 350, {})
    assert result["leveled"] and result["from"] == 1 and result["to"] == 3
    assert u.level == 3
    assert u.current_xp == 50
    assert u.xp_to_next_level == 300
    assert u.base.hp == 13000 and u.base.attack == 2300
    assert u.current_hp == u.effective.hp

def test_experience_below_threshold_banks_xp(make_unit):
    u = make_unit("rx-78-2-gundam", current_xp=90)
    apply_experience(u, 150, {})
    assert u.level == 2
    assert u.current_xp == 140
    assert u.xp_to_next_level == 200
