import asyncio

from srwlite.cli import auto_play
from srwlite.core.types import GamePhase, SlotType

def _in_battle(ctx, delegate=True):
    m = ctx.machine
    m.start_scenario()
    if delegate:
        m.toggle_delegation()
    return m

def test_delegated_player_turn_finishes(ctx):
    m = _in_battle(ctx)
    for _ in range(60):
        if not m.phase.is_player_turn:
            break
        assert asyncio.run(ctx.agent.play_step())
    assert m.phase in (GamePhase.ENEMY_TURN, GamePhase.VICTORY)
    if m.phase is GamePhase.ENEMY_TURN:
        assert all(u.has_acted for u in m.session.living_players())

def test_play_step_needs_delegation(ctx):
    m = _in_battle(ctx, delegate=False)
    assert not asyncio.run(ctx.agent.play_step())
    assert m.session.selected_unit_id is None

def test_enemy_turn_runs_without_delegation(ctx):
    m = _in_battle(ctx, delegate=False)
    m.end_player_turn()
    assert asyncio.run(ctx.step())
    assert m.phase is GamePhase.SELECT_UNIT
    assert m.session.turn == 2

def test_disabling_delegation_cancels_pending_step(ctx):
    m = _in_battle(ctx)
    ctx.agent.delay = 0.2

    async def scenario():
        task = asyncio.create_task(ctx.agent.play_step())
        await asyncio.sleep(0.01)
        m.toggle_delegation()
        return await task

    assert asyncio.run(scenario()) is False
    assert m.phase is GamePhase.SELECT_UNIT
    assert m.session.selected_unit_id is None
    assert not any(u.has_acted for u in m.session.player_units)

def test_second_sequence_skips_while_locked(ctx):
    _in_battle(ctx)

    async def scenario():
        async with ctx.agent.cpu_lock:
            return await ctx.agent.play_step()

    assert asyncio.run(scenario()) is False

def test_automation_fault_falls_back_to_hangar(ctx, monkeypatch):
    m = _in_battle(ctx)

    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(m, "select_unit", boom)
    assert asyncio.run(ctx.agent.play_step()) is False
    assert m.phase is GamePhase.HANGAR
    assert m.session is None
    assert not ctx.agent.cpu_lock.locked()
    assert any("Returning to the hangar" in msg.text for msg in m.messages)
    assert m.hangar_automation_ran

def test_hangar_automation_equips_upgrades_and_launches(ctx):
    m = ctx.machine
    for u in list(m.roster.units):
        for slot in SlotType:
            m.equip_item(u.instance_id, slot, None)
    m.toggle_delegation()
    assert asyncio.run(ctx.agent.run_hangar())
    gundam = m.roster.units[0]
    held = {slot: m.roster.meta.get(gundam.equipped[slot]).definition_id for slot in SlotType}
    assert held == {
        SlotType.WEAPON: "eq_hyper_mega_cannon",
        SlotType.ARMOR: "eq_heavy_armor",
        SlotType.BOOSTER: "eq_high_mobility_booster",
    }
    assert m.roster.is_exclusive()
    assert m.roster.meta.credits < 10000
    assert all(i.level == 2 for i in m.inventory.values() if i.instance_id in m.roster.equipped_instance_ids())
    assert m.phase is GamePhase.SELECT_UNIT
    assert m.hangar_automation_ran

def test_hangar_automation_runs_once_per_visit(ctx):
    m = ctx.machine
    m.toggle_delegation()
    m.hangar_automation_ran = True
    assert not asyncio.run(ctx.agent.run_hangar())
    assert m.phase is GamePhase.HANGAR

def test_victory_rolls_into_next_scenario(ctx):
    m = _in_battle(ctx)
    m.session.map_units(lambda u: u.clone(current_hp=0), players=False)
    assert m.check_outcome() is GamePhase.VICTORY
    assert asyncio.run(ctx.step())
    assert m.director.cursor == 1
    assert m.phase is GamePhase.SELECT_UNIT
    assert m.session.title == "Breaking the Luna II Line"

def test_auto_play_clears_first_scenario(ctx):
    result = asyncio.run(auto_play(ctx, 1))
    assert result["cleared"] == 1
    assert ctx.machine.director.cursor >= 1
    assert ctx.machine.roster.is_exclusive()

def _progress(m):
    return (m.roster.meta.credits,
            {i.instance_id: i.level for i in m.inventory.values()},
            [u.level for u in m.roster.units])

def _settled(ctx):
    m = ctx.machine
    assert not ctx.agent.cpu_lock.locked()
    assert m.roster.is_exclusive()
    return m

def test_fault_fallback_does_not_rerun_hangar_automation(ctx, monkeypatch):
    m = ctx.machine
    m.toggle_delegation()
    calls = []

    def boom(*args, **kwargs):
        calls.append(1)
        raise RuntimeError("boom")

    monkeypatch.setattr(m, "start_scenario", boom)
    assert asyncio.run(ctx.agent.run_hangar()) is False
    _settled(ctx)
    assert m.phase is GamePhase.HANGAR
    assert m.hangar_automation_ran
    assert asyncio.run(ctx.step()) is False
    assert len(calls) == 1

def test_disabling_delegation_stops_hangar_automation(ctx, monkeypatch):
    m = ctx.machine
    m.toggle_delegation()
    upgrade = m.upgrade_item
    seen = {}

    def upgrade_then_disable(instance_id, **kwargs):
        ok = upgrade(instance_id, **kwargs)
        if m.delegation_enabled:
            m.toggle_delegation()
            seen["progress"] = _progress(m)
        return ok

    monkeypatch.setattr(m, "upgrade_item", upgrade_then_disable)
    assert asyncio.run(ctx.agent.run_hangar()) is False
    _settled(ctx)
    assert m.phase is GamePhase.HANGAR
    assert m.session is None
    assert m.hangar_automation_ran
    assert _progress(m) == seen["progress"]
    assert sum(1 for i in m.inventory.values() if i.level == 2) == 1
    assert any("hangar automation stopped" in msg.text for msg in m.messages)

def _victory(ctx):
    m = _in_battle(ctx)
    m.session.map_units(lambda u: u.clone(current_hp=0), players=False)
    assert m.check_outcome() is GamePhase.VICTORY
    return m

def test_disabling_delegation_holds_at_victory(ctx):
    m = _victory(ctx)
    before = _progress(m)
    ctx.agent.delay = 0.2

    async def scenario():
        task = asyncio.create_task(ctx.agent.run_after_victory())
        await asyncio.sleep(0.01)
        m.toggle_delegation()
        return await task

    assert asyncio.run(scenario()) is False
    _settled(ctx)
    assert m.phase is GamePhase.VICTORY
    assert m.director.cursor == 0
    assert _progress(m) == before

def test_disabling_delegation_after_victory_stays_in_hangar(ctx, monkeypatch):
    m = _victory(ctx)
    before = _progress(m)
    back = m.return_to_hangar

    def back_then_disable(**kwargs):
        ok = back(**kwargs)
        m.toggle_delegation()
        return ok

    monkeypatch.setattr(m, "return_to_hangar", back_then_disable)
    assert asyncio.run(ctx.agent.run_after_victory()) is False
    _settled(ctx)
    assert m.phase is GamePhase.HANGAR
    assert m.session is None
    assert m.director.cursor == 1
    assert _progress(m) == before
    assert all(i.level == 1 for i in m.inventory.values())

def test_enemy_turn_abandoned_when_returning_to_hangar(ctx):
    m = _in_battle(ctx, delegate=False)
    m.end_player_turn()
    before = _progress(m)
    ctx.agent.delay = 0.2

    async def scenario():
        task = asyncio.create_task(ctx.agent.run_enemy_turn())
        await asyncio.sleep(0.01)
        assert m.return_to_hangar()
        return await task

    assert asyncio.run(scenario()) is False
    _settled(ctx)
    assert m.phase is GamePhase.HANGAR
    assert m.session is None
    assert m.director.cursor == 0
    assert _progress(m) == before
    assert all(u.is_alive for u in m.roster.units)
