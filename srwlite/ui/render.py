"""Rich renderers for the battle map, roster, inventory and message log.

The ``build_*`` helpers return rich renderables so they can be printed or
captured; ``show`` prints a full frame for the current phase.
"""
from __future__ import annotations
from typing import Iterable, List, Optional

from rich.align import Align
from rich.box import ROUNDED, DOUBLE
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from srwlite.battle.models import UnitInstance
from srwlite.battle.session import BattleMessage
from srwlite.core.types import CATEGORY_STYLES, PHASE_LABELS, GamePhase, SlotType
from srwlite.data.loader import get_equipment, get_robot, get_spirit

console = Console()

_TERRAIN_TAGS = {
    "SPACE": "[white]SPC[/white]",
    "ASTEROID_FIELD": "[yellow]AST[/yellow]",
    "COLONY_INTERIOR": "[cyan]COL[/cyan]",
}

def _bar(cur: int, maximum: int, width: int = 16, color: str = "green") -> str:
    maximum = max(1, maximum)
    cur = max(0, min(cur, maximum))
    filled = int(round(cur / maximum * width))
    ratio = cur / maximum
    if color == "green" and ratio < 0.25:
        color = "red"
    elif color == "green" and ratio < 0.5:
        color = "yellow"
    return f"[{color}]{'█' * filled}[/{color}][dim]{'░' * (width - filled)}[/dim]"

def build_units_table(units: Iterable[UnitInstance], title: str, *, selected: Optional[str] = None,
                      style: str = "bright_white") -> Table:
    table = Table(title=f"[bold {style}]{title}[/bold {style}]", box=ROUNDED, style=style, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Unit", style="bold")
    table.add_column("Lv", justify="right")
    table.add_column("HP")
    table.add_column("EN", justify="right")
    table.add_column("SP", justify="right")
    table.add_column("ATK/DEF/MOB", justify="right")
    table.add_column("Zone")
    table.add_column("State")
    for i, u in enumerate(units, 1):
        marker = "►" if u.instance_id == selected else ""
        state: List[str] = []
        if not u.is_alive:
            state.append("[red]DESTROYED[/red]")
        elif u.has_acted:
            state.append("[dim]acted[/dim]")
        if u.active_effect is not None:
            state.append(f"[bright_magenta]{u.active_effect.value}[/bright_magenta]")
        table.add_row(
            f"{marker}{i}",
            u.name,
            str(u.level),
            f"{_bar(u.current_hp, u.effective.hp)} {u.current_hp}/{u.effective.hp}",
            f"{u.current_en}/{u.effective.en}",
            f"{u.current_sp}/{u.effective.sp}",
            f"{u.effective.attack}/{u.effective.defense}/{u.effective.mobility}",
            _TERRAIN_TAGS.get(u.terrain.value, u.terrain.value),
            " ".join(state),
        )
    return table

def build_roster_table(machine) -> Table:
    """Hangar view: progression, effective stats and loadout per roster unit."""
    table = Table(title="[bold bright_blue]Roster[/bold bright_blue]", box=ROUNDED)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Unit / Pilot")
    table.add_column("Lv", justify="right")
    table.add_column("XP", justify="right")
    table.add_column("HP/EN/SP", justify="right")
    table.add_column("ATK/DEF/MOB", justify="right")
    for slot in SlotType:
        table.add_column(slot.value.title())
    for i, u in enumerate(machine.roster.units, 1):
        row = [
            str(i),
            f"{u.name}\n[dim]{u.pilot}[/dim]",
            str(u.level),
            f"{u.current_xp}/{u.xp_to_next_level}",
            f"{u.effective.hp}/{u.effective.en}/{u.effective.sp}",
            f"{u.effective.attack}/{u.effective.defense}/{u.effective.mobility}",
        ]
        for slot in SlotType:
            inst = machine.roster.meta.get(u.equipped.get(slot))
            d = get_equipment(inst.definition_id) if inst else None
            row.append(f"{d.name} Lv{inst.level}" if d else "[dim]-[/dim]")
        table.add_row(*row)
    return table

def build_inventory_table(machine) -> Table:
    meta = machine.roster.meta
    table = Table(title=f"[bold bright_blue]Inventory[/bold bright_blue]  credits: {meta.credits}", box=ROUNDED)
    table.add_column("Id")
    table.add_column("Item")
    table.add_column("Slot")
    table.add_column("Lv", justify="right")
    table.add_column("Bonus")
    table.add_column("Upgrade", justify="right")
    table.add_column("Held by")
    for inst in meta.inventory.values():
        d = get_equipment(inst.definition_id)
        if d is None:
            continue
        cost = meta.upgrade_cost(inst.instance_id)
        holder = machine.roster.holder_of(inst.instance_id)
        holder_name = machine.roster.find(holder[0]).name if holder else "[dim]-[/dim]"
        bonus = " ".join(f"{k}+{v}" for k, v in d.boost_at(inst.level).items())
        table.add_row(inst.instance_id, d.name, d.slot.value, f"{inst.level}/{d.max_level}", bonus,
                      f"{cost}C" if cost is not None else "[dim]MAX[/dim]", holder_name)
    return table

def build_log_panel(messages: List[BattleMessage], limit: int = 12) -> Panel:
    text = Text()
    for msg in messages[-limit:]:
        text.append(msg.text + "\n", style=CATEGORY_STYLES.get(msg.category, "white"))
    return Panel(text, title="[bold]Log[/bold]", box=ROUNDED, style="bright_white")

def build_spirit_hint(unit: UnitInstance) -> str:
    d = get_robot(unit.definition_id)
    if d is None:
        return ""
    parts = []
    for sid in d.spirits:
        s = get_spirit(sid)
        if s is not None:
            style = "bright_magenta" if unit.current_sp >= s.cost else "dim"
            parts.append(f"[{style}]{sid}({s.cost})[/{style}]")
    return "Spirits: " + " ".join(parts)

def build_header(machine) -> Panel:
    phase_label = PHASE_LABELS.get(machine.phase, machine.phase.value)
    turn = f"  Turn {machine.session.turn}" if machine.session is not None else ""
    deleg = "  [bright_magenta]DELEGATION ON[/bright_magenta]" if machine.delegation_enabled else ""
    title = Text.from_markup(f"[bold bright_white]{machine.title}[/bold bright_white]\n{phase_label}{turn}{deleg}")
    title.justify = "center"
    return Panel(Align.center(title), box=DOUBLE, style="bright_white")

def build_frame(machine):
    parts = [build_header(machine)]
    s = machine.session
    if s is not None and machine.phase is not GamePhase.HANGAR:
        parts.append(Columns([
            build_units_table(s.enemy_units, "Enemy Forces", style="bright_red"),
            build_units_table(s.player_units, "Your Units", selected=s.selected_unit_id, style="bright_cyan"),
        ]))
        sel = s.selected_unit()
        if sel is not None and machine.phase is GamePhase.ACTION:
            parts.append(Text.from_markup(build_spirit_hint(sel)))
    else:
        parts.append(build_roster_table(machine))
        parts.append(build_inventory_table(machine))
    parts.append(build_log_panel(machine.messages))
    return Group(*parts)

def show(machine, out: Optional[Console] = None) -> None:
    (out or console).print(build_frame(machine))

__all__ = [
    "console","show","build_frame","build_units_table","build_roster_table","build_inventory_table",
    "build_log_panel","build_header","build_spirit_hint",
]
