import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Optional, Protocol, TypeVar

from auragrow.errors import StorageError

logger = logging.getLogger(__name__)

CACHE_TTL_MS = 3_600_000
DURABLE_PREFIX = "cache:"

T = TypeVar("T")


def now_ms() -> int:
    return int(time.time() * 1000)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStore:
    """Durable-store stand-in that lives only as long as the process."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStore:
    """
    Key/value store persisted as a single JSON object on disk.

    Every write replaces the whole file through a temporary file and
    ``os.replace`` so readers never observe a partially written entry.
    File I/O is synchronous and blocks the event loop for the duration of
    the read or write, so the file has to stay small: each ``set`` drops
    cache entries whose ``storedAt`` is older than ``ttl_ms``.
    """

    def __init__(self, path: Path, ttl_ms: int = CACHE_TTL_MS, clock: Callable[[], int] = now_ms):
        self._path = Path(path)
        self._ttl_ms = ttl_ms
        self._clock = clock

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        items = self._prune(self._load())
        items[key] = value
        self._dump(items)

    def delete(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._dump(items)

    def _prune(self, items: Dict[str, str]) -> Dict[str, str]:
        cutoff = self._clock() - self._ttl_ms
        kept = {key: value for key, value in items.items() if not _expired_before(value, cutoff)}
        if len(kept) < len(items):
            logger.debug("Pruned %d expired entries from %s", len(items) - len(kept), self._path)
        return kept

    def _load(self) -> Dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"Failed to read cache store {self._path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Cache store is invalid JSON, starting empty: %s", self._path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Cache store has unexpected layout, starting empty: %s", self._path)
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _dump(self, items: Dict[str, str]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=".cache-", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(items, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write cache store {self._path}: {exc}") from exc


def _expired_before(raw: str, cutoff: int) -> bool:
    # Values that are not cache entries are left alone.
    try:
        stored_at = json.loads(raw)["storedAt"]
    except (KeyError, TypeError, ValueError):
        return False
    return isinstance(stored_at, (int, float)) and stored_at <= cutoff


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    data: T
    stored_at: int

    def to_json(self) -> str:
        return json.dumps({"data": self.data, "storedAt": self.stored_at})

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry[Any]":
        payload = json.loads(raw)
        return cls(data=payload["data"], stored_at=int(payload["storedAt"]))


class ResponseCache:
    """
    Two-tier cache with a fixed one hour TTL.

    Lookups hit the in-process dict first and fall back to the durable store,
    promoting fresh durable entries into memory. Durable-store failures are
    logged and never surfaced; the in-process tier keeps working.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        clock: Callable[[], int] = now_ms,
        ttl_ms: int = CACHE_TTL_MS,
    ):
        self._store: KeyValueStore = store if store is not None else MemoryStore()
        self._clock = clock
        self._ttl_ms = ttl_ms
        self._memory: Dict[str, CacheEntry[Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._lookup(key)
        return entry.data if entry else None

    def get_timestamp(self, key: str) -> Optional[int]:
        entry = self._lookup(key)
        return entry.stored_at if entry else None

    def set(self, key: str, value: Any) -> None:
        entry = CacheEntry(data=value, stored_at=self._clock())
        self._memory[key] = entry
        try:
            self._store.set(DURABLE_PREFIX + key, entry.to_json())
        except (StorageError, TypeError, ValueError) as exc:
            logger.warning("Failed to write durable cache entry %s: %s", key, exc)

    def invalidate(self, key: str) -> None:
        self._memory.pop(key, None)
        self._delete_durable(key)

    def _fresh(self, entry: CacheEntry[Any]) -> bool:
        return self._clock() - entry.stored_at < self._ttl_ms

    def _lookup(self, key: str) -> Optional[CacheEntry[Any]]:
        entry = self._memory.get(key)
        if entry is not None:
            if self._fresh(entry):
                return entry
            self._memory.pop(key, None)

        entry = self._read_durable(key)
        if entry is None:
            return None
        if not self._fresh(entry):
            self._delete_durable(key)
            return None
        self._memory[key] = entry
        return entry

    def _read_durable(self, key: str) -> Optional[CacheEntry[Any]]:
        try:
            raw = self._store.get(DURABLE_PREFIX + key)
        except StorageError as exc:
            logger.warning("Failed to read durable cache entry %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return CacheEntry.from_json(raw)
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed durable cache entry %s", key)
            self._delete_durable(key)
            return None

    def _delete_durable(self, key: str) -> None:
        try:
            self._store.delete(DURABLE_PREFIX + key)
        except StorageError as exc:
            logger.warning("Failed to remove durable cache entry %s: %s", key, exc)
