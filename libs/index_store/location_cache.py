"""Durable cache of index locations.

The cache remembers which ``name -> location`` pairs were registered so the
service can reopen them after a restart. It knows nothing about search: it is
pure storage, and it is allowed to diverge from the set of open indices.

Backends
- ``JsonFileLocationCache``: a JSON object in a local file (default)
- ``RedisLocationCache``: a Redis hash, for deployments that already run Redis

Every storage failure is raised as ``CacheStorageError``.
"""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import suppress
from pathlib import Path
from typing import Any, Dict, Optional, Union

import redis
import structlog

from libs.common.config import IndexServiceConfig
from libs.common.errors import CacheStorageError

logger = structlog.get_logger("index_store.location_cache")


class LocationCache(ABC):
    """Persistent mapping from index name to on-disk location."""

    @abstractmethod
    def get_entries(self) -> Dict[str, str]:
        """Return a snapshot of every cached ``name -> location`` pair."""
        pass

    @abstractmethod
    def set_entry(self, name: str, location: str) -> None:
        """Insert or replace an entry; durable once this returns."""
        pass

    @abstractmethod
    def remove_entry(self, name: str) -> None:
        """Remove an entry. No-op if ``name`` is not cached."""
        pass


class JsonFileLocationCache(LocationCache):
    """Location cache stored as a JSON object in a single file.

    Writes replace the file atomically (temp file, fsync, rename), so a crash
    leaves either the previous or the new content, never a torn file. Entry
    order is insertion order.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def get_entries(self) -> Dict[str, str]:
        with self._lock:
            return self._read()

    def set_entry(self, name: str, location: str) -> None:
        with self._lock:
            entries = self._read()
            entries[name] = location
            self._write(entries)
        logger.debug("Cache entry stored", index=name, location=location, path=str(self.path))

    def remove_entry(self, name: str) -> None:
        with self._lock:
            entries = self._read()
            if name not in entries:
                return
            del entries[name]
            self._write(entries)
        logger.debug("Cache entry removed", index=name, path=str(self.path))

    def _read(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise CacheStorageError(f"Cannot read location cache: {e}", path=str(self.path)) from e

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CacheStorageError(f"Corrupt location cache: {e}", path=str(self.path)) from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise CacheStorageError("Location cache is not a name -> location object", path=str(self.path))

        return data

    def _write(self, entries: Dict[str, str]) -> None:
        tmp_path: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise CacheStorageError(f"Cannot write location cache: {e}", path=str(self.path)) from e
        finally:
            if tmp_path is not None:
                with suppress(OSError):
                    os.unlink(tmp_path)


class RedisLocationCache(LocationCache):
    """Location cache stored in a Redis hash (field = name, value = location)."""

    def __init__(self, client: Any, key: str = "index_service:locations"):
        self.client = client
        self.key = key

    @classmethod
    def from_url(cls, redis_url: str, key: str = "index_service:locations") -> "RedisLocationCache":
        """Build a cache backed by a synchronous client for ``redis_url``."""
        return cls(redis.Redis.from_url(redis_url), key)

    @staticmethod
    def _decode(value: Union[str, bytes]) -> str:
        return value.decode("utf-8") if isinstance(value, bytes) else value

    def get_entries(self) -> Dict[str, str]:
        try:
            raw = self.client.hgetall(self.key)
        except redis.RedisError as e:
            raise CacheStorageError(f"Cannot read location cache: {e}", key=self.key) from e
        return {self._decode(k): self._decode(v) for k, v in raw.items()}

    def set_entry(self, name: str, location: str) -> None:
        try:
            self.client.hset(self.key, name, location)
        except redis.RedisError as e:
            raise CacheStorageError(f"Cannot write location cache: {e}", key=self.key) from e

    def remove_entry(self, name: str) -> None:
        try:
            self.client.hdel(self.key, name)
        except redis.RedisError as e:
            raise CacheStorageError(f"Cannot write location cache: {e}", key=self.key) from e


def create_location_cache(config: IndexServiceConfig) -> LocationCache:
    """Create the location cache selected by ``ML_INDEX_CACHE_BACKEND``."""
    backend = config.ml_index_cache_backend

    if backend == "file":
        logger.info("Using file location cache", path=config.ml_index_cache_path)
        return JsonFileLocationCache(config.ml_index_cache_path)

    if backend == "redis":
        logger.info("Using Redis location cache", key=config.ml_index_cache_key)
        return RedisLocationCache.from_url(config.ml_redis_url, config.ml_index_cache_key)

    raise ValueError(f"Unsupported location cache backend: {backend}")
