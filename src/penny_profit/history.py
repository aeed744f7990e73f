"""
Penny Profit - Calculation History
Bounded, most-recent-first log of completed calculations.

Manages:
- In-memory list: the source of truth, updated before any disk write
- Durable copy: the whole list written through to LocalStore on every change
- Export: pretty-printed JSON for download
"""

import json
import time
from datetime import datetime
from pathlib import Path
from typing import List, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from penny_profit.engine import CalculationResult
from penny_profit.storage import LocalStore, StorageError

HISTORY_KEY = "calculationHistory"
MAX_ENTRIES = 10
EXPORT_FILENAME = "investment-calculations.json"
TIMESTAMP_FORMAT = "%m/%d/%Y, %I:%M:%S %p"


class HistoryEntry(BaseModel):
    """Immutable snapshot of one completed calculation."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(description="Millisecond timestamp, strictly increasing per store.")
    stock_price: float = Field(alias="stockPrice")
    profit_target: float = Field(alias="profitTarget")
    investment: float
    timestamp: str = Field(description="Human-readable creation time.")

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


def parse_entries(data: object) -> List[HistoryEntry]:
    """
    Turn a decoded JSON value into history entries.

    Raises:
        ValueError: If data is not a list of valid entries.
    """
    if not isinstance(data, list):
        raise ValueError(f"History must be a list, got {type(data).__name__}")
    try:
        return [HistoryEntry.model_validate(item) for item in data]
    except ValidationError as e:
        raise ValueError(f"Invalid history entry: {e}") from e


def parse_export(data: Union[bytes, str]) -> List[HistoryEntry]:
    """Re-read a file produced by HistoryStore.export()."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return parse_entries(json.loads(data))


class HistoryStore:
    """
    History of calculations, capped at MAX_ENTRIES, newest first.
    Owns all reads and writes of the history key in the local store.
    """

    def __init__(self, store: LocalStore, max_entries: int = MAX_ENTRIES):
        self.store = store
        self.max_entries = max_entries
        self._entries: List[HistoryEntry] = []
        self._last_id = 0

    @property
    def entries(self) -> List[HistoryEntry]:
        """Read-only view of the current sequence."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> List[HistoryEntry]:
        """Restore from durable storage. Missing or malformed data gives an empty history."""
        self.store.reload()
        raw = self.store.get(HISTORY_KEY)

        if raw is None:
            logger.info("Starting with empty calculation history")
            self._entries = []
            return self.entries

        try:
            entries = parse_entries(raw)
        except ValueError as e:
            logger.warning(f"Discarding unreadable calculation history: {e}")
            entries = []

        self._entries = entries[: self.max_entries]
        self._last_id = max((entry.id for entry in self._entries), default=self._last_id)
        logger.info(f"Loaded {len(self._entries)} calculation(s) from history")
        return self.entries

    def record(self, result: CalculationResult) -> HistoryEntry:
        """Add a completed calculation to the front and persist the trimmed list."""
        entry = HistoryEntry(
            id=self._next_id(),
            stock_price=result.stock_price,
            profit_target=result.profit_target,
            investment=result.investment,
            timestamp=datetime.now().strftime(TIMESTAMP_FORMAT),
        )

        self._entries = [entry] + self._entries[: self.max_entries - 1]
        logger.debug(f"History recorded: {entry.id} (${entry.stock_price} x {entry.profit_target}/¢)")
        self._persist()
        return entry

    def clear(self) -> None:
        self._entries = []
        logger.info("Calculation history cleared")
        self._persist()

    def export(self) -> bytes:
        """Serialize the current sequence as pretty-printed JSON. Does not modify the store."""
        records = [entry.to_record() for entry in self._entries]
        return json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")

    def export_to(self, path: Union[str, Path] = EXPORT_FILENAME) -> Path:
        target = Path(path)
        if target.is_dir():
            target = target / EXPORT_FILENAME
        target.write_bytes(self.export())
        logger.info(f"Exported {len(self._entries)} calculation(s) to {target}")
        return target

    def _next_id(self) -> int:
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return self._last_id

    def _persist(self) -> None:
        try:
            self.store.set(HISTORY_KEY, [entry.to_record() for entry in self._entries])
        except StorageError as e:
            logger.error(f"Failed to persist calculation history: {e}")
