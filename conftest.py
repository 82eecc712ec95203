# Ensure project root is on sys.path for tests
import sys, pathlib, random
root = pathlib.Path(__file__).resolve().parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

import pytest

from srwlite.battle.factory import create_or_refresh
from srwlite.battle.positions import FixedPositions
from srwlite.data.loader import get_robot
from srwlite.game.context import GameContext
from srwlite.system.save import MemoryBlobStore
from srwlite.system.settings import Settings, SettingsData

@pytest.fixture
def positions():
    # Open space for everyone: no terrain defense bonus.
    return FixedPositions(player=[(30.0, 90.0), (50.0, 90.0), (70.0, 90.0)],
                          enemy=[(30.0, 80.0), (50.0, 80.0), (70.0, 80.0)])

@pytest.fixture
def settings(tmp_path):
    return Settings(SettingsData(cpu_delay_ms=0, autosave=True), tmp_path / "settings.json")

@pytest.fixture
def store():
    return MemoryBlobStore()

@pytest.fixture
def ctx(settings, store, positions):
    c = GameContext(settings, store, rng=random.Random(7), positions=positions, delay_ms=0)
    c.new_game()
    return c

@pytest.fixture
def make_unit():
    def _make(robot_id, *, is_player=True, inventory=None, ng_cycle=0, **changes):
        u = create_or_refresh(get_robot(robot_id), is_player, inventory or {}, ng_cycle,
                              positions=FixedPositions())
        return u.clone(**changes) if changes else u
    return _make
