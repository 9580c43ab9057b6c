"""
KeyValueStorage adapters.
"""

import logging
import os
import re
import tempfile
from pathlib import Path

from ankivocab.domain.errors import StorageError
from ankivocab.domain.ports import KeyValueStorage

logger = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStorage(KeyValueStorage):
    """
    Stores each key as `<data_dir>/<key>.json`.

    Writes go to a temp file in the same directory and are moved into place,
    so a crash never leaves a half-written blob behind.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY_RE.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    async def load(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    async def save(self, key: str, value: str) -> None:
        path = self._path_for(key)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Could not write {path}: {e}") from e
        logger.debug(f"Saved {len(value)} bytes to {path}")


class MemoryStorage(KeyValueStorage):
    """Process-local storage. Contents vanish with the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.items: dict[str, str] = dict(initial or {})

    async def load(self, key: str) -> str | None:
        return self.items.get(key)

    async def save(self, key: str, value: str) -> None:
        self.items[key] = value
