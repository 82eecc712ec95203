"""
Error classes for clearer exception sources.
"""
from __future__ import annotations

class SrwError(Exception):
    pass

class DataLoadError(SrwError):
    def __init__(self, path: str, detail: str):
        super().__init__(f"Failed to load {path}: {detail}")
        self.path = path
        self.detail = detail

class ValidationError(SrwError):
    pass

class BattleStateError(SrwError):
    """A caller broke the battle contract (e.g. resolved an attack with no defender)."""

class AutomationError(SrwError):
    def __init__(self, sequence: str, detail: str):
        super().__init__(f"Automation '{sequence}' aborted: {detail}")
        self.sequence = sequence
        self.detail = detail

class StorageError(SrwError):
    def __init__(self, key: str, detail: str):
        super().__init__(f"Storage '{key}' failed: {detail}")
        self.key = key
        self.detail = detail
