"""
Durable key-value storage backends.

Keys are strings, values are JSON documents encoded as strings. Every
backend writes a single key atomically; there is no multi-key transaction.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from redis import Redis, RedisError

from krishimitr.core.config import Settings, settings as default_settings
from krishimitr.core.exceptions import StorageUnavailableError

logger = structlog.get_logger(__name__)


class KeyValueStore:
    """Interface shared by all storage backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Process-local store; does not survive restart. Used in tests and demos."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.:-]+$")


class JsonFileStore(KeyValueStore):
    """
    One file per key under a directory.

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so a reader never sees a half-written value.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error("storage_directory_unavailable", path=str(self.directory), error=str(e))
            raise StorageUnavailableError(
                "Storage directory is not writable", details={"path": str(self.directory)}
            ) from e

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("storage_read_failed", key=key, error=str(e))
            raise StorageUnavailableError("Storage read failed", details={"key": key}) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.directory), prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error("storage_write_failed", key=key, error=str(e))
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageUnavailableError("Storage write failed", details={"key": key}) from e

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("storage_delete_failed", key=key, error=str(e))
            raise StorageUnavailableError("Storage delete failed", details={"key": key}) from e


class RedisStore(KeyValueStore):
    """Redis-backed store; keys are namespaced with a prefix."""

    def __init__(self, url: Optional[str] = None, prefix: str = "", client: Optional[Any] = None):
        self.prefix = prefix
        if client is not None:
            self.redis = client
        else:
            self.redis = Redis.from_url(
                url,
                encoding="utf-8",
                decode_responses=True,
                socket_keepalive=True,
            )

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.redis.get(self._key(key))
        except RedisError as e:
            logger.error("redis_get_error", key=key, error=str(e))
            raise StorageUnavailableError("Redis read failed", details={"key": key}) from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.redis.set(self._key(key), value)
        except RedisError as e:
            logger.error("redis_set_error", key=key, error=str(e))
            raise StorageUnavailableError("Redis write failed", details={"key": key}) from e

    def delete(self, key: str) -> None:
        try:
            self.redis.delete(self._key(key))
        except RedisError as e:
            logger.error("redis_delete_error", key=key, error=str(e))
            raise StorageUnavailableError("Redis delete failed", details={"key": key}) from e


def build_store(config: Optional[Settings] = None) -> KeyValueStore:
    """Create the storage backend selected by settings.storage_backend."""
    config = config or default_settings
    backend = config.storage_backend

    if backend == "memory":
        store: KeyValueStore = InMemoryStore()
    elif backend == "file":
        store = JsonFileStore(config.storage_path)
    elif backend == "redis":
        store = RedisStore(url=config.redis_url, prefix=config.storage_key_prefix)
    else:
        raise ValueError(f"Storage backend {backend} not implemented")

    logger.info("storage_backend_ready", backend=backend)
    return store
