"""JSON file-based storage adapter — implements StoragePort.

One file per key, each written atomically (temp file + replace). There is no
transaction across keys: a crash between two writes leaves the earlier one
in place.
"""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from punchclock.domain.errors import PersistenceFailure

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonStorage:
    """File-based JSON storage implementing StoragePort protocol."""

    def __init__(self, storage_dir: str = "memory"):
        self._storage_dir = Path(storage_dir)
        try:
            self._storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(f"Cannot create storage dir {storage_dir!r}: {e}") from e

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise PersistenceFailure(f"Invalid storage key: {key!r}")
        return self._storage_dir / f"{key}.json"

    def get(self, keys: Iterable[str], defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Return {key: value} for each key; missing keys take their default."""
        defaults = defaults or {}
        out: Dict[str, Any] = {}
        for key in keys:
            path = self._path(key)
            if not path.exists():
                if key in defaults:
                    out[key] = defaults[key]
                continue
            try:
                out[key] = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise PersistenceFailure(f"Failed to read {key!r}: {e}") from e
        return out

    def set(self, values: Dict[str, Any]) -> None:
        for key, value in values.items():
            self._write(key, value)

    def _write(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            content = json.dumps(value, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f"Value for {key!r} is not JSON-serializable: {e}") from e
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Atomic write
            fd, tmp_path = tempfile.mkstemp(
                dir=str(path.parent), suffix=".tmp",
            )
        except OSError as e:
            raise PersistenceFailure(f"Failed to write {key!r}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, str(path))
        except BaseException as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise PersistenceFailure(f"Failed to write {key!r}: {e}") from e
            raise
