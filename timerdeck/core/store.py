"""Key-value stores for timer snapshots.

The registry only needs two operations, get and set, both async and both
allowed to fail. JsonFileStore keeps every key in one JSON file under
~/.timerdeck and replaces the file atomically on each write.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from timerdeck.core.errors import StoreReadError, StoreWriteError

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path.home() / ".timerdeck" / "timers.json"


class KeyValueStore(ABC):
    """Asynchronous string key-value store."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read a value.

        Args:
            key: Store key.

        Returns:
            Stored string, or None if the key is absent.

        Raises:
            StoreReadError: If the backend cannot be read.
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Write a value.

        Args:
            key: Store key.
            value: String to store.

        Raises:
            StoreWriteError: If the backend rejects the write.
        """
        ...


class MemoryStore(KeyValueStore):
    """Process-local store. Nothing survives a restart."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def dump(self) -> dict[str, str]:
        """Get a copy of everything stored."""
        return self._data.copy()


class JsonFileStore(KeyValueStore):
    """Store backed by a single JSON object file.

    Blocking file I/O runs in a worker thread so ticks on the event loop are
    never held up by disk writes.
    """

    def __init__(self, path: Path = DEFAULT_DATA_FILE) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreReadError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreReadError(f"Expected a JSON object in {self._path}")
        return data

    def _write_key(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StoreReadError as e:
            # Corrupt file: start over rather than refuse every future write
            logger.warning("Replacing unreadable store file: %s", e)
            data = {}
        data[key] = value

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreWriteError(f"Cannot write {self._path}: {e}") from e

    async def get(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._read_all)
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            raise StoreReadError(f"Value for '{key}' is not a string")
        return value

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write_key, key, value)
