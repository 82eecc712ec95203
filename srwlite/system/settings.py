from __future__ import annotations
import json, os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Callable, List, Optional
from srwlite.core.logging import logger

SETTINGS_FILENAME = ".srwlite_settings.json"
SAVE_DIR_ENV = "SRW_SAVE_DIR"

@dataclass
class SettingsData:
    log_level: str = "INFO"
    cpu_delay_ms: int = 750       # pause between automated steps
    narration: bool = False       # flavor line after every attack
    autosave: bool = True
    save_dir: Optional[str] = None

    def normalize(self):
        if self.log_level not in {"DEBUG","INFO","WARN","ERROR"}:
            self.log_level = "INFO"
        try:
            self.cpu_delay_ms = int(self.cpu_delay_ms)
        except (TypeError, ValueError):
            self.cpu_delay_ms = 750
        if self.cpu_delay_ms < 0 or self.cpu_delay_ms > 10000:
            self.cpu_delay_ms = 750
        self.narration = bool(self.narration)
        self.autosave = bool(self.autosave)
        if self.save_dir is not None and not str(self.save_dir).strip():
            self.save_dir = None

    def resolved_save_dir(self) -> Optional[Path]:
        env = os.environ.get(SAVE_DIR_ENV)
        if env:
            return Path(env)
        if self.save_dir:
            return Path(self.save_dir).expanduser()
        return None

class Settings:
    def __init__(self, data: SettingsData, path: Path):
        self.data = data
        self.path = path
        self._listeners: List[Callable[[SettingsData], None]] = []

    @classmethod
    def _resolve_path(cls) -> Path:
        home = Path(os.path.expanduser("~"))
        if home.is_dir() and os.access(home, os.W_OK):
            return home / SETTINGS_FILENAME
        return Path.cwd() / SETTINGS_FILENAME

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "Settings":
        path = path or cls._resolve_path()
        if path.exists():
            try:
                raw = json.loads(path.read_text())
                known = {f.name for f in fields(SettingsData)}
                data = SettingsData(**{k: v for k, v in raw.items() if k in known})
                data.normalize()
                logger.debug("SettingsLoaded", path=str(path))
                return cls(data, path)
            except Exception as e:
                logger.warn("SettingsParseFailed", error=str(e))
        return cls(SettingsData(), path)

    def save(self):
        try:
            self.path.write_text(json.dumps(asdict(self.data), indent=2))
            logger.debug("SettingsSaved", path=str(self.path))
        except Exception as e:
            logger.error("SettingsSaveFailed", error=str(e))

    def update(self, **changes):
        for k, v in changes.items():
            if hasattr(self.data, k):
                setattr(self.data, k, v)
        self.data.normalize()
        logger.set_level(self.data.log_level)
        self.save()
        self._notify()

    def on_change(self, fn: Callable[[SettingsData], None]):
        self._listeners.append(fn)

    def _notify(self):
        for fn in self._listeners:
            fn(self.data)
