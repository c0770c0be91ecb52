from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union
import json
import logging
import threading

from .errors import ConfigError

logger = logging.getLogger(__name__)


class ValueTable:
    """Fingerprint -> scalar estimate, defaulting to 0.0 for unseen keys.

    Entries are never removed unless `max_entries` is given, in which case
    the least recently used entry is evicted (and logged) once the bound is
    exceeded. Every read-modify-write runs under one exclusive lock, so agent
    loops on different threads may share a table.
    """

    def __init__(self, max_entries: Optional[int] = None, default: float = 0.0) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ConfigError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self.default = float(default)
        self.evictions = 0
        self._values: "OrderedDict[str, float]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def get(self, key: str) -> float:
        with self._lock:
            value = self._values.get(key)
            if value is None:
                return self.default
            if self.max_entries is not None:
                self._values.move_to_end(key)
            return value

    def set(self, key: str, value: float) -> None:
        with self._lock:
            self._store(key, float(value))

    def update(self, key: str, fn: Callable[[float], float]) -> float:
        """Atomically replace the value under `key` with `fn(current)`.

        If `fn` raises, the stored value is left as it was.
        """
        with self._lock:
            current = self._values.get(key, self.default)
            new_value = float(fn(current))
            self._store(key, new_value)
            return new_value

    def max_over(self, keys: Iterable[str]) -> float:
        with self._lock:
            values = [self._values.get(k, self.default) for k in keys]
        if not values:
            raise ConfigError("max_over needs at least one key")
        return max(values)

    def items(self) -> List[Tuple[str, float]]:
        with self._lock:
            return list(self._values.items())

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._values.keys())

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def _store(self, key: str, value: float) -> None:
        self._values[key] = value
        if self.max_entries is None:
            return
        self._values.move_to_end(key)
        while len(self._values) > self.max_entries:
            evicted, _ = self._values.popitem(last=False)
            self.evictions += 1
            logger.warning("value table full (%d entries), evicted least recently used key (%d chars)",
                           self.max_entries, len(evicted))

    # -------------------- Persistence --------------------

    def save(self, path: Union[str, Path]) -> None:
        """Write the table as an ordered JSON array of [fingerprint, value] pairs."""
        pairs = [[k, v] for k, v in self.items()]
        Path(path).write_text(json.dumps(pairs), encoding="utf-8")
        logger.info("saved %d value table entries to %s", len(pairs), path)

    @staticmethod
    def load(path: Union[str, Path], max_entries: Optional[int] = None) -> "ValueTable":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ConfigError(f"{path}: expected a list of [fingerprint, value] pairs")
        table = ValueTable(max_entries=max_entries)
        for item in raw:
            if not isinstance(item, list) or len(item) != 2 or not isinstance(item[0], str):
                raise ConfigError(f"{path}: malformed entry {item!r}")
            if isinstance(item[1], bool) or not isinstance(item[1], (int, float)):
                raise ConfigError(f"{path}: value for entry {item[0][:40]!r} is not a number: {item[1]!r}")
            table.set(item[0], float(item[1]))
        logger.info("loaded %d value table entries from %s", len(table), path)
        return table
