"""
Persistence for session slots.

Storages are dumb string key/value holders; sealing happens in the
session manager. ``max_age_seconds`` is passed through so backends with
native expiry (cookies) can apply it.
"""

from __future__ import annotations

import json
import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)

SESSION_FILENAME = "session.json"


class SessionStorage(ABC):
    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, name: str, value: str, max_age_seconds: int) -> None:
        ...

    @abstractmethod
    def remove(self, name: str) -> None:
        """Idempotent"""
        ...


class MemorySessionStorage(SessionStorage):
    """Process-local slots. Survives a SessionManager restart, not a process restart."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def set(self, name: str, value: str, max_age_seconds: int) -> None:
        self._values[name] = value

    def remove(self, name: str) -> None:
        self._values.pop(name, None)


class FileSessionStorage(SessionStorage):
    """JSON-backed slots under the data directory"""

    def __init__(self, data_dir: Path):
        self.path = Path(data_dir) / SESSION_FILENAME
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load session file", path=str(self.path), error=str(e))
            return {}
        return {k: v for k, v in raw.items() if isinstance(v, str)} if isinstance(raw, dict) else {}

    def _save(self, values: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w", dir=str(self.path.parent), delete=False, encoding="utf-8"
        ) as tf:
            json.dump(values, tf, indent=2)
            temp_path = Path(tf.name)
        try:
            shutil.move(str(temp_path), str(self.path))
        except Exception:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def get(self, name: str) -> Optional[str]:
        return self._load().get(name)

    def set(self, name: str, value: str, max_age_seconds: int) -> None:
        with self._lock:
            values = self._load()
            values[name] = value
            self._save(values)

    def remove(self, name: str) -> None:
        with self._lock:
            values = self._load()
            if name in values:
                del values[name]
                self._save(values)
