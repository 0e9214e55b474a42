"""Durable key/value storage for per-client preferences and recent searches.

Values are strings; callers JSON-encode structured data themselves.
JsonFileStorage writes the whole map atomically via temp-file-then-rename
with owner-only permissions (0o600) inside an owner-only directory (0o700).
"""

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

_STORAGE_DIR_MODE = 0o700
_STORAGE_FILE_MODE = 0o600


class KeyValueStorage(Protocol):
    """Protocol for string key/value persistence."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage for tests and ephemeral clients."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Persist a flat string map as a JSON object on disk.

    The file is read once at construction. A corrupt or non-object file is
    logged and treated as empty so one bad write never locks a client out.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).resolve()
        self._data: dict[str, str] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("ignoring unreadable storage file", path=str(self._path), error=str(e))
            return {}
        if not isinstance(raw, dict):
            logger.warning("ignoring non-object storage file", path=str(self._path))
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _write(self) -> None:
        directory = self._path.parent
        directory.mkdir(mode=_STORAGE_DIR_MODE, parents=True, exist_ok=True)

        payload = json.dumps(self._data, sort_keys=True).encode("utf-8")
        fd, tmp_path = tempfile.mkstemp(dir=str(directory), suffix=".tmp", prefix=".storage_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _STORAGE_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(self._path)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
