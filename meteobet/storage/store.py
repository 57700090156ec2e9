"""Durable key-value store for serialized documents.

The engine persists two documents (ledger, rate limits) as strings under
fixed keys. ``FileStore`` keeps one file per key with atomic tempfile -> rename
writes: if the process crashes mid-write the previous document stays intact.
There are no multi-process guarantees; the last write wins.
"""

import logging
import re
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from meteobet.exceptions import StorageError

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """In-process store, used by tests and dry runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class FileStore:
    """One ``<key>.json`` file per key under ``base_dir``."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageError(f"Invalid store key: {key!r}", key=key)
        return self.base_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)

        temp_path: Path | None = None
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.base_dir,
                delete=False,
                suffix=".json",
                encoding="utf-8",
            ) as temp_file:
                temp_file.write(value)
                temp_path = Path(temp_file.name)

            # Atomic rename
            shutil.move(str(temp_path), str(path))
            logger.debug(f"Saved {key} to {path}")

        except OSError as e:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
            logger.error(f"Failed to save {key}: {e}")
            raise StorageError(f"Failed to save {key}: {e}", key=key) from e
