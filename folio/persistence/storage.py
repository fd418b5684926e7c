"""
Storage Port

Key/value persistence used for the snapshot history. The analytics core only
sees ``save(key, value)`` and ``load(key)``; concrete backends are injected.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional, Protocol, Union, runtime_checkable

from ..core.errors import ErrorCodes, StorageError

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.\-]+$")


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for key/value storage backends."""

    def save(self, key: str, value: bytes) -> None:
        """Store bytes under a key, replacing any previous value."""
        ...

    def load(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None if the key was never saved."""
        ...


class InMemoryStorage:
    """Dictionary-backed storage, for tests and ephemeral sessions."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def save(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def load(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def keys(self):
        return list(self._data.keys())


class FileStorage:
    """
    One file per key inside a directory.

    Writes go to a temporary sibling file which then replaces the target,
    so a failed write leaves the previous value intact.
    """

    def __init__(self, directory: Union[str, Path], suffix: str = ".json"):
        self.directory = Path(directory).expanduser()
        self.suffix = suffix

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(
                ErrorCodes.STORAGE_WRITE_FAILED,
                detail=f"Invalid storage key: {key!r}",
                context={"key": key},
            )
        return self.directory / f"{key}{self.suffix}"

    def save(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(value)
            tmp_path.replace(path)
        except OSError as e:
            logger.error("Failed to write %s: %s", path, e)
            raise StorageError(
                ErrorCodes.STORAGE_WRITE_FAILED,
                detail=str(path),
                original_error=e,
                context={"key": key},
            ) from e
        logger.debug("Saved %d bytes to %s", len(value), path)

    def load(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as e:
            logger.error("Failed to read %s: %s", path, e)
            raise StorageError(
                ErrorCodes.STORAGE_READ_FAILED,
                detail=str(path),
                original_error=e,
                context={"key": key},
            ) from e
