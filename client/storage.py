# client/storage.py
"""
Persistent key/value storage for client session artifacts.

FileStorage keeps one JSON file per key, written atomically with owner-only
permissions. Concurrent processes sharing a directory are serialized only
as far as os.replace is atomic.
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union


class Storage(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]: ...
    def set(self, key: str, value: Dict[str, Any]) -> None: ...
    def delete(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self):
        self._items: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        value = self._items.get(key)
        return dict(value) if value is not None else None

    def set(self, key: str, value: Dict[str, Any]) -> None:
        self._items[key] = dict(value)

    def delete(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    DEFAULT_DIRECTORY = Path.home() / ".keyward"

    def __init__(self, directory: Union[str, Path, None] = None):
        self.directory = Path(directory) if directory else self.DEFAULT_DIRECTORY
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored dict. Raises ValueError if the file is not valid JSON."""
        path = self._path(key)
        if not path.exists():
            return None
        value = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(value, dict):
            raise ValueError(f"corrupt storage entry: {key}")
        return value

    def set(self, key: str, value: Dict[str, Any]) -> None:
        path = self._path(key)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f)
            os.chmod(tmp, 0o600)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
