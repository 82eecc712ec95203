import io
import json
from pathlib import Path

from rich.console import Console

from srwlite import cli
from srwlite.cli import handle_command, interactive, parse_args
from srwlite.core.types import GamePhase, SlotType
from srwlite.game.director import ScenarioDirector
from srwlite.system.save import SAVE_KEY
from srwlite.system.settings import Settings, SettingsData
from srwlite.ui.render import show

def test_settings_normalize_repairs_values():
    data = SettingsData(log_level="LOUD", cpu_delay_ms="fast", narration=1, save_dir="  ")
    data.normalize()
    assert data.log_level == "INFO"
    assert data.cpu_delay_ms == 750
    assert data.narration is True
    assert data.save_dir is None
    data = SettingsData(cpu_delay_ms=-5)
    data.normalize()
    assert data.cpu_delay_ms == 750

def test_settings_load_ignores_unknown_keys(tmp_path):
    path = tmp_path / "s.json"
    path.write_text(json.dumps({"cpu_delay_ms": 100, "theme": "dark"}))
    s = Settings.load(path)
    assert s.data.cpu_delay_ms == 100
    path.write_text("{broken")
    assert Settings.load(path).data == SettingsData()

def test_settings_update_persists_and_notifies(tmp_path):
    seen = []
    s = Settings(SettingsData(), tmp_path / "s.json")
    s.on_change(seen.append)
    s.update(narration=True, cpu_delay_ms=0)
    assert seen and seen[-1].narration
    assert json.loads((tmp_path / "s.json").read_text())["cpu_delay_ms"] == 0

def test_save_dir_env_wins(tmp_path, monkeypatch):
    monkeypatch.setenv("SRW_SAVE_DIR", str(tmp_path))
    assert SettingsData(save_dir="/elsewhere").resolved_save_dir() == tmp_path
    monkeypatch.delenv("SRW_SAVE_DIR")
    assert SettingsData(save_dir="/elsewhere").resolved_save_dir() == Path("/elsewhere")
    assert SettingsData().resolved_save_dir() is None

def test_context_follows_settings_changes(ctx, settings):
    settings.update(narration=True, cpu_delay_ms=200)
    assert ctx.machine.narration
    assert ctx.agent.delay == 0.2

def test_director_titles():
    d = ScenarioDirector()
    assert d.hangar_title() == "First Contact"
    d.ng_cycle = 2
    assert d.hangar_title() == "First Contact (NG+ 2)"
    d.cursor = len(d.scenarios)
    assert d.past_end and d.current() is None
    assert d.hangar_title() == "All scenarios cleared! Next: NG+ 3"

def test_cli_commands_drive_a_turn(ctx):
    m = ctx.machine
    assert handle_command(ctx, "equip 1 armor -")
    assert m.roster.units[0].equipped[SlotType.ARMOR] is None
    assert handle_command(ctx, "start")
    assert m.phase is GamePhase.SELECT_UNIT
    assert handle_command(ctx, "select 1")
    assert m.phase is GamePhase.ACTION
    assert handle_command(ctx, "spirit strike")
    assert handle_command(ctx, "attack")
    assert handle_command(ctx, "target 1")
    assert m.phase is GamePhase.SELECT_UNIT
    assert m.session.player_units[0].has_acted
    assert handle_command(ctx, "select 9")
    assert any(msg.text == "No such unit." for msg in m.messages)
    assert handle_command(ctx, "dance")
    assert any(msg.text.startswith("Unknown command") for msg in m.messages)
    assert not handle_command(ctx, "quit")

def test_parse_args():
    args = parse_args(["--auto", "2", "--seed", "5"])
    assert args.auto == 2 and args.seed == 5 and not args.new

def test_render_hangar_and_battle(ctx):
    out = Console(file=io.StringIO(), width=200, record=True)
    show(ctx.machine, out)
    assert "Roster" in out.export_text()
    ctx.machine.start_scenario()
    show(ctx.machine, out)
    text = out.export_text()
    assert "Enemy Forces" in text and "First Contact" in text

def test_ctrl_c_during_automation_disables_delegation_and_saves(ctx, store, monkeypatch):
    ctx.machine.toggle_delegation()
    store.blobs.clear()
    calls = []

    def interrupted(*args, **kwargs):
        calls.append(1)
        if len(calls) == 1:
            raise KeyboardInterrupt
        return 0

    monkeypatch.setattr(ctx, "run_pending", interrupted)
    monkeypatch.setattr(cli.console, "input", lambda *a, **k: "quit")
    interactive(ctx)
    assert len(calls) == 1
    assert not ctx.machine.delegation_enabled
    assert SAVE_KEY in store.blobs
