"""Terminal front end.

  python main.py              interactive session (resumes the saved game)
  python main.py --new        ignore the save and start over
  python main.py --auto 3     clear three scenarios in delegation mode, headless
"""
from __future__ import annotations
import argparse
import asyncio
from typing import List, Optional

from srwlite import __version__
from srwlite.core.logging import logger
from srwlite.core.rng import make_rng
from srwlite.core.types import GamePhase, MessageCategory, SlotType
from srwlite.game.context import GameContext
from srwlite.system.save import FileBlobStore
from srwlite.system.settings import Settings
from srwlite.ui.render import console, show

HELP = """[bold]Battle[/bold]  select N | attack | wait | spirit ID | target N | back | end
[bold]Hangar[/bold]  equip UNIT SLOT ITEM|- | upgrade ITEM | start | status
[bold]Any[/bold]     delegate | hangar | save | help | quit"""

def _pick(units, raw: str):
    try:
        idx = int(raw) - 1
    except ValueError:
        return None
    if 0 <= idx < len(units):
        return units[idx]
    return None

def handle_command(ctx: GameContext, line: str) -> bool:
    """Apply one command line. Returns False when the player asked to quit."""
    m = ctx.machine
    parts = line.strip().split()
    if not parts:
        return True
    cmd, args = parts[0].lower(), parts[1:]
    s = m.session
    if cmd in ("quit", "exit", "q"):
        return False
    if cmd == "help":
        console.print(HELP)
    elif cmd == "select" and args:
        unit = _pick(s.player_units if s else [], args[0])
        if unit is None:
            m.say("No such unit.", MessageCategory.INFO)
        else:
            m.select_unit(unit.instance_id)
    elif cmd == "attack":
        m.choose_attack()
    elif cmd == "wait":
        m.choose_wait()
    elif cmd == "back":
        m.cancel()
    elif cmd == "spirit" and args:
        m.activate_spirit(args[0].lower())
    elif cmd == "target" and args:
        unit = _pick(s.enemy_units if s else [], args[0])
        if unit is None:
            m.say("No such target.", MessageCategory.INFO)
        else:
            m.select_target(unit.instance_id)
    elif cmd == "end":
        m.end_player_turn()
    elif cmd == "equip" and len(args) == 3:
        unit = _pick(m.roster.units, args[0])
        try:
            slot = SlotType(args[1].upper())
        except ValueError:
            slot = None
        if unit is None or slot is None:
            m.say("Usage: equip UNIT SLOT ITEM|-  (SLOT is weapon, armor or booster)", MessageCategory.HANGAR)
        else:
            m.equip_item(unit.instance_id, slot, None if args[2] == "-" else args[2])
    elif cmd == "upgrade" and args:
        m.upgrade_item(args[0])
    elif cmd == "start":
        m.start_scenario()
    elif cmd == "delegate":
        m.toggle_delegation()
    elif cmd == "hangar":
        m.return_to_hangar()
    elif cmd == "save":
        if ctx.save():
            m.say("Game saved.", MessageCategory.SYSTEM)
    elif cmd == "status":
        pass
    else:
        m.say(f"Unknown command: {line.strip()} (try 'help')", MessageCategory.INFO)
    return True

async def auto_play(ctx: GameContext, scenarios: int, *, max_steps: int = 100000) -> dict:
    """Clear ``scenarios`` battles with delegation on. Defeats retry the same scenario."""
    m = ctx.machine
    if not m.delegation_enabled:
        m.toggle_delegation()
    cleared = defeats = steps = 0
    while steps < max_steps:
        m = ctx.machine
        if m.phase is GamePhase.VICTORY:
            cleared += 1
            console.print(f"[green]Cleared[/green] {m.title} in {m.session.turn} turns")
            m.return_to_hangar(silent=True)
            if cleared >= scenarios:
                break
            continue
        if m.phase is GamePhase.DEFEAT:
            defeats += 1
            console.print(f"[red]Defeated[/red] in {m.title}")
            m.return_to_hangar(silent=True)
            continue
        if not await ctx.step():
            logger.warn("AutoPlayIdle", phase=m.phase.value)
            break
        steps += 1
    return {"cleared": cleared, "defeats": defeats, "steps": steps}

def interactive(ctx: GameContext) -> None:
    console.print(HELP)
    while True:
        try:
            ctx.run_pending()
        except KeyboardInterrupt:
            # Ctrl-C during automation hands control back to the player.
            if ctx.machine.delegation_enabled:
                ctx.machine.toggle_delegation()
            logger.info("AutomationInterrupted", phase=ctx.machine.phase.value)
        show(ctx.machine)
        try:
            line = console.input("[bold bright_white]> [/bold bright_white]")
        except (EOFError, KeyboardInterrupt):
            break
        if not handle_command(ctx, line):
            break
    if ctx.save():
        console.print("[dim]Progress saved.[/dim]")

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="srw-lite", description="Turn-based mobile suit battle simulator")
    p.add_argument("--new", action="store_true", help="ignore the saved game and start a new one")
    p.add_argument("--auto", type=int, metavar="N", help="clear N scenarios in delegation mode without input")
    p.add_argument("--seed", type=int, help="seed the game RNG (overrides SRW_RNG_SEED)")
    p.add_argument("--delay", type=int, metavar="MS", help="pause between CPU steps in milliseconds")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)

def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings.load()
    logger.set_level(settings.data.log_level)  # type: ignore[arg-type]
    delay = args.delay
    if delay is None and args.auto:
        delay = 0
    store = FileBlobStore(settings.data.resolved_save_dir())
    ctx = GameContext(settings, store, rng=make_rng(args.seed), delay_ms=delay)
    if args.new:
        ctx.gateway.clear()
        ctx.new_game()
    else:
        ctx.load_or_new()
    if args.auto:
        result = asyncio.run(auto_play(ctx, args.auto))
        ctx.save()
        show(ctx.machine)
        console.print(f"Auto-play finished: {result['cleared']} cleared, {result['defeats']} defeats.")
        return 0
    interactive(ctx)
    settings.save()
    return 0

__all__ = ["run","handle_command","auto_play","parse_args"]
