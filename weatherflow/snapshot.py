"""Single slot store for the last good forecast, used as the offline fallback.

The store never raises to its callers: when the persistence medium cannot
be used the call is recorded as a ``StorageUnavailable`` outcome and the
store behaves as if it were empty.
"""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Optional, Protocol

from .entities import CanonicalForecast, Snapshot, snapshot_from_dict, snapshot_to_dict
from .errors import StorageUnavailable


logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "weatherflow:forecast-snapshot"
MAX_SNAPSHOT_AGE = timedelta(hours=24)


class KeyValueStore(Protocol):
    """Persistence medium addressed by a few fixed logical keys."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryStore:
    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class FileStore:
    """One JSON document per key inside ``directory``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (key.replace(":", "_") + ".json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SnapshotStore:
    def __init__(
        self,
        medium: Optional[KeyValueStore] = None,
        now_func: Callable[[], datetime] = _utcnow,
        on_unavailable: Optional[Callable[[StorageUnavailable], None]] = None,
    ) -> None:
        self._medium = medium
        self._now = now_func
        self._on_unavailable = on_unavailable
        self.last_error: Optional[StorageUnavailable] = None
        self.unavailable_count = 0

    @property
    def degraded(self) -> bool:
        return self.last_error is not None

    def save(self, forecast: CanonicalForecast, location_key: str, units: str) -> bool:
        snapshot = Snapshot(
            data=replace(forecast, cached=False, cached_at=None, cached_location=None),
            timestamp=self._now().astimezone(timezone.utc).isoformat(),
            location_key=location_key,
            units=units,
        )
        try:
            self._require_medium().set(SNAPSHOT_KEY, json.dumps(snapshot_to_dict(snapshot)))
        except Exception as exc:  # noqa: BLE001 - any medium failure degrades to an empty store
            self._unavailable("save", exc)
            return False
        self.last_error = None
        return True

    def load(self) -> Optional[Snapshot]:
        try:
            raw = self._require_medium().get(SNAPSHOT_KEY)
            if raw is None:
                return None
            snapshot = snapshot_from_dict(json.loads(raw))
        except Exception as exc:  # noqa: BLE001
            self._unavailable("load", exc)
            return None
        self.last_error = None
        return snapshot

    def is_recent(self, snapshot: Snapshot) -> bool:
        try:
            return snapshot.age(self._now()) < MAX_SNAPSHOT_AGE
        except ValueError:
            return False

    def clear(self) -> bool:
        try:
            self._require_medium().delete(SNAPSHOT_KEY)
        except Exception as exc:  # noqa: BLE001
            self._unavailable("clear", exc)
            return False
        return True

    # helpers ------------------------------------------------------------
    def _require_medium(self) -> KeyValueStore:
        if self._medium is None:
            raise StorageUnavailable("no persistence medium configured")
        return self._medium

    def _unavailable(self, operation: str, exc: Exception) -> None:
        error = exc if isinstance(exc, StorageUnavailable) else StorageUnavailable(f"{operation} failed: {exc}")
        logger.debug("Snapshot %s degraded to empty store: %s", operation, error)
        self.last_error = error
        self.unavailable_count += 1
        if self._on_unavailable is not None:
            self._on_unavailable(error)


__all__ = [
    "SNAPSHOT_KEY",
    "MAX_SNAPSHOT_AGE",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "SnapshotStore",
]
