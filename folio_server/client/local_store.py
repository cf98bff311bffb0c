"""Client-local key/value storage for positions and portfolio identity."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any

from folio_server.portfolio.schemas import position_from_dict, position_to_dict
from folio_server.providers.models import Position

LOGGER = logging.getLogger(__name__)

POSITIONS_KEY = "portfolio-positions"
PORTFOLIO_ID_KEY = "portfolio-id"
RECOVERY_CODE_KEY = "portfolio-recovery-code"
BACKEND_MIGRATED_KEY = "portfolio-backend-migrated"


class MemoryLocalStore:
    """Dict-backed store. Reads and writes never raise."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(items or {})

    def _load(self) -> dict[str, str]:
        return self._items

    def _save(self, items: dict[str, str]) -> None:
        self._items = items

    def get_item(self, key: str) -> str | None:
        try:
            value = self._load().get(key)
        except Exception:
            LOGGER.exception("local store read failed: key=%s", key)
            return None
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> bool:
        try:
            items = dict(self._load())
            items[key] = value
            self._save(items)
        except Exception:
            LOGGER.exception("local store write failed: key=%s", key)
            return False
        return True

    def remove_item(self, key: str) -> bool:
        try:
            items = dict(self._load())
            items.pop(key, None)
            self._save(items)
        except Exception:
            LOGGER.exception("local store delete failed: key=%s", key)
            return False
        return True

    def get_positions(self) -> list[Position]:
        stored = self.get_item(POSITIONS_KEY)
        if not stored:
            return []
        try:
            raw: Any = json.loads(stored)
            return [position_from_dict(item) for item in raw]
        except (ValueError, TypeError, KeyError, AttributeError):
            LOGGER.exception("Failed to read positions from local store")
            return []

    def set_positions(self, positions: list[Position]) -> bool:
        try:
            serialized = json.dumps([position_to_dict(position) for position in positions])
        except (TypeError, ValueError):
            LOGGER.exception("Failed to serialize positions for local store")
            return False
        return self.set_item(POSITIONS_KEY, serialized)


class LocalStore(MemoryLocalStore):
    """JSON file persisted between sessions, standing in for browser storage."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__()
        self.path = Path(path)
        self._lock = Lock()

    def _load(self) -> dict[str, str]:
        with self._lock:
            if not self.path.exists():
                return {}
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"Local store at {self.path} is not a JSON object")
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _save(self, items: dict[str, str]) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(items, ensure_ascii=True), encoding="utf-8")
            os.replace(tmp_path, self.path)
