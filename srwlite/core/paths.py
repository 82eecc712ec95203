"""
Centralized path helpers (flat layout, data shipped inside the package).
"""
from __future__ import annotations
from pathlib import Path

# This file lives at srwlite/core/paths.py
PACKAGE = Path(__file__).resolve().parents[1]
DATA = PACKAGE / "data"
SCHEMA = PACKAGE / "system" / "save.schema.json"
HOME_SAVE_DIR = Path.home() / ".srwlite"
