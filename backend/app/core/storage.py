# backend/app/core/storage.py
"""Key/value stores backing projects, endpoints, result logs and sessions.

Values are JSON-serializable collections. Both stores swallow write failures
after logging them: a broken disk must never abort a running scan.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Union

from .observability import logs

# Persistent collection keys
STORAGE_KEYS = {
    "ENDPOINTS": "endpoints",
    "PROJECTS": "projects",
    "TEST_RESULTS": "testResults",
    "PORT_RESULTS": "portResults",
}

# Session-scoped keys
SESSION_KEYS = {
    "SELECTED_PROJECT": "selectedProject",
    "SCANNER_STATE": "scannerState",
    "PORT_SCANNER_STATE": "portScannerState",
}


class KeyValueStore(ABC):
    """Abstract store over opaque string keys."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Replace the value for ``key``. Returns False if the write failed."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""


class MemoryStore(KeyValueStore):
    """In-process store. Values are deep-copied on the way in and out."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> bool:
        try:
            # Round-trip through JSON so both stores accept the same values
            self._data[key] = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            logs.error(f"Error saving {key}", "storage", exception=e)
            return False
        return True

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """One JSON file per key under a data directory.

    Writes go to a temporary file in the same directory which then replaces
    the target, so readers see either the old or the new blob.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logs.error(f"Error retrieving {key}", "storage", {"path": str(path)}, exception=e)
            return default

    def set(self, key: str, value: Any) -> bool:
        path = self._path(key)
        tmp_name = None
        try:
            payload = json.dumps(value, indent=2)
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{key}.", suffix=".tmp", dir=self.directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as e:
            logs.error(f"Error saving {key}", "storage", {"path": str(path)}, exception=e)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
        return True

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logs.error(f"Error removing {key}", "storage", exception=e)
