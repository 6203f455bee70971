"""
Key-value record stores.

The coach only needs ``get(key)`` / ``set(key, value)`` over JSON-compatible
values.  Every ``set`` replaces the whole record, so a reader never sees a
partially written value.
"""

import json
import os
import re
import threading
from pathlib import Path
from typing import Any


class StoreError(Exception):
    """Raised when the backing storage cannot be read or written."""

    pass


class RecordStore:
    """Interface shared by all stores."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError


class MemoryStore(RecordStore):
    """
    In-process store used by tests and short-lived sessions.

    Values are round-tripped through JSON on write so callers cannot mutate
    stored records through a shared reference.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            raw = self._data.get(key)
        return default if raw is None else json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        with self._lock:
            self._data[key] = encoded

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)


class JsonFileStore(RecordStore):
    """
    One JSON file per key under a data directory.

    Writes go to a temporary sibling file that is then moved over the
    target with os.replace, which is atomic on POSIX and Windows.
    """

    def __init__(self, data_dir: str | Path):
        """
        Initialize the store.

        Args:
            data_dir: Directory holding the record files (created on first write)
        """
        self.data_dir = Path(data_dir)
        self._lock = threading.Lock()

    def path_for(self, key: str) -> Path:
        """Map a record key to its file path."""
        safe = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.data_dir / f"{safe}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self.path_for(key)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read record {key!r} from {path}: {e}") from e

    def set(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            with self._lock:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                with open(tmp, "w", encoding="utf-8") as f:
                    json.dump(value, f, indent=2, ensure_ascii=False)
                os.replace(tmp, path)
        except OSError as e:
            raise StoreError(f"Cannot write record {key!r} to {path}: {e}") from e
