"""Name → color stores with an atomic get-or-create."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

from neighborhoods.common.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class ColorStore(Protocol):
    def get(self, name: str) -> Optional[str]: ...

    def put(self, name: str, color: str) -> None: ...

    def get_or_create(self, name: str, factory: Callable[[], str]) -> str: ...

    def all(self) -> Dict[str, str]: ...


class InMemoryColorStore:
    """Process-local colors; the first writer for a name wins."""

    def __init__(self, colors: Optional[Dict[str, str]] = None) -> None:
        self._colors: Dict[str, str] = dict(colors or {})
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[str]:
        return self._colors.get(name)

    def put(self, name: str, color: str) -> None:
        with self._lock:
            self._colors.setdefault(name, color)

    def get_or_create(self, name: str, factory: Callable[[], str]) -> str:
        with self._lock:
            existing = self._colors.get(name)
            if existing is not None:
                return existing
            color = factory()
            self._colors[name] = color
            return color

    def all(self) -> Dict[str, str]:
        return dict(self._colors)


class JsonFileColorStore:
    """Colors persisted as a flat JSON object on disk.

    The file is re-read inside the lock on every write so that a color
    assigned by another process since our last read wins over ours.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def get(self, name: str) -> Optional[str]:
        return self._read().get(name)

    def put(self, name: str, color: str) -> None:
        self.get_or_create(name, lambda: color)

    def get_or_create(self, name: str, factory: Callable[[], str]) -> str:
        with self._lock:
            colors = self._read()
            existing = colors.get(name)
            if existing is not None:
                return existing
            color = factory()
            colors[name] = color
            self._write(colors)
            logger.debug("Assigned color %s to %r", color, name)
            return color

    def all(self) -> Dict[str, str]:
        return self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, ValueError) as exc:
            raise StoreUnavailableError(f"Could not read colors from {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreUnavailableError(f"Color file {self.path} must contain a JSON object.")
        return {str(key).lower(): str(value) for key, value in data.items()}

    def _write(self, colors: Dict[str, str]) -> None:
        write_json_atomic(self.path, colors)


def write_json_atomic(path: Path, payload: object) -> None:
    """Replace ``path`` in one step so readers never see a half-written file."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=isinstance(payload, dict))
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as exc:
        raise StoreUnavailableError(f"Could not write {path}: {exc}") from exc
