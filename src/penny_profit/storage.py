"""
Penny Profit - Local Storage
A small key/value store persisted as one JSON file on disk.
Holds the client's durable state (display preference and calculation history).
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from penny_profit.errors import PennyProfitError


class StorageError(PennyProfitError):
    """Raised when the store file cannot be written."""


class LocalStore:
    """
    JSON-file backed key/value store.

    The whole file is rewritten on every set/remove. Reads come from the
    in-memory copy loaded at construction time.
    """

    def __init__(self, path: str = "data/local_store.json"):
        self.path = Path(path)
        self._data: Dict[str, Any] = {}
        self.reload()

    def reload(self) -> None:
        """Re-read the file, replacing the in-memory copy."""
        self._data = {}
        if not self.path.exists():
            logger.debug(f"No local store at {self.path}, starting empty")
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local store {self.path} is unreadable, starting empty: {e}")
            return

        if isinstance(data, dict):
            self._data = data
        else:
            logger.warning(f"Local store {self.path} does not hold an object, ignoring it")

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value and write the file."""
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def _save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError as e:
            raise StorageError(f"Failed to write local store {self.path}: {e}") from e
        logger.debug(f"Local store saved to {self.path}")
