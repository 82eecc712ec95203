"""Random source helpers.

Every random decision in a game goes through one ``random.Random`` owned by the
GameContext, so a run can be replayed by exporting ``SRW_RNG_SEED``.
"""
from __future__ import annotations
import os
import random
from typing import Optional

from .logging import logger

SEED_ENV = "SRW_RNG_SEED"

def seed_from_env() -> Optional[int]:
    raw = os.environ.get(SEED_ENV)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warn("IgnoringSeed", env=SEED_ENV, value=raw)
        return None

def make_rng(seed: Optional[int] = None) -> random.Random:
    if seed is None:
        seed = seed_from_env()
    if seed is not None:
        logger.debug("RngSeeded", seed=seed)
    return random.Random(seed)

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (``round`` would bank to even)."""
    if value < 0:
        return -round_half_up(-value)
    return int(value + 0.5)

__all__ = ["make_rng","seed_from_env","round_half_up","SEED_ENV"]
