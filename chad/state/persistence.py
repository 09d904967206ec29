"""
chad/state/persistence.py

Durable snapshot of the bot's state (pending reminders + id counter).

The file is written to `<path>.tmp` and then renamed over `<path>`, so the
canonical file is either the previous snapshot or the new one, never a
partial write. A snapshot is only accepted on load when its version tag
matches DATA_VERSION and it is younger than MAX_DATA_AGE.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from .reminders import Reminder

logger = logging.getLogger(__name__)

# Bump when the file layout changes; older files are then discarded on load.
DATA_VERSION = "1.0"
MAX_DATA_AGE = 60 * 60 * 24 * 7
DEFAULT_DATA_FILE = "chad_memory.json"


class PersistenceError(Exception):
    """Raised when the durable state cannot be written or decoded."""


@dataclass
class Settings:
    timestamp: int
    version: str = DATA_VERSION
    reminders: list[Reminder] = field(default_factory=list)
    reminder_counter: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "version": self.version,
            "reminders": [r.to_dict() for r in self.reminders],
            "reminderCounter": self.reminder_counter,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        return cls(
            timestamp=int(data.get("timestamp", 0)),
            version=str(data.get("version", "")),
            reminders=[Reminder.from_dict(r) for r in data.get("reminders") or []],
            reminder_counter=int(data.get("reminderCounter", 0)),
        )


class SettingsStore:
    def __init__(self, path: str | os.PathLike = DEFAULT_DATA_FILE):
        self.path = Path(path)
        self.tmp_path = self.path.with_name(self.path.name + ".tmp")
        self._write_lock = threading.Lock()

    def save(self, settings: Settings) -> None:
        payload = json.dumps(settings.to_dict(), indent=2)
        with self._write_lock:
            try:
                self.tmp_path.write_text(payload, encoding="utf-8")
                os.replace(self.tmp_path, self.path)
            except OSError as e:
                try:
                    self.tmp_path.unlink(missing_ok=True)
                except OSError:
                    logger.warning("Could not remove temp file %s", self.tmp_path)
                raise PersistenceError(f"Failed to write {self.path}: {e}") from e
        logger.debug("Saved %d reminder(s) to %s", len(settings.reminders), self.path)

    def load(self, now: float) -> Settings | None:
        """
        Read the snapshot at `path`.

        Returns None when there is nothing usable (no file, stale or
        incompatible data); raises PersistenceError when the file exists but
        cannot be read or decoded.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("No saved data at %s, starting fresh", self.path)
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {self.path}: {e}") from e

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"root must be an object, got {type(data).__name__}")
            settings = Settings.from_dict(data)
        except (ValueError, TypeError, KeyError) as e:
            raise PersistenceError(f"Failed to decode {self.path}: {e}") from e

        if settings.version != DATA_VERSION:
            logger.warning(
                "Data version mismatch (%s != %s), starting fresh", settings.version, DATA_VERSION
            )
            return None

        if now - settings.timestamp > MAX_DATA_AGE:
            logger.warning("Data is too old, starting fresh")
            return None

        logger.debug(
            "Loaded data from %s (version %s)",
            datetime.fromtimestamp(settings.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
            settings.version,
        )
        return settings
