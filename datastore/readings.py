"""Append-only store of raw sensor readings."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

from models.records import RawReading, ensure_utc
from settings import get_settings

logger = logging.getLogger(__name__)


class ReadingStoreError(RuntimeError):
    """Raised when the backing storage cannot be read or written."""


class ReadingStore:
    """Readings are kept in insertion order and never mutated or removed."""

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._readings: List[RawReading] = []
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def append(self, reading: RawReading) -> None:
        with self._lock:
            self._readings.append(reading)
            self._persist()

    def query(self, device_id: str, start: datetime, end: datetime) -> List[RawReading]:
        """Readings of ``device_id`` with ``start <= timestamp <= end``."""

        start, end = ensure_utc(start), ensure_utc(end)
        with self._lock:
            return [
                reading
                for reading in self._readings
                if reading.device_id == device_id and start <= reading.timestamp <= end
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._readings)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [_serialize(reading) for reading in self._readings]
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2))
        except OSError as exc:
            raise ReadingStoreError(
                f"Could not write readings to {self.persistence_path}."
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning(
                "Ignoring unreadable readings file",
                extra={"reason": str(self.persistence_path)},
            )
            data = []

        for payload in data:
            self._readings.append(_deserialize(payload))


def _serialize(reading: RawReading) -> Dict[str, Any]:
    return {
        "device_id": reading.device_id,
        "timestamp": reading.timestamp.isoformat(),
        "values": {parameter.value: value for parameter, value in reading.values.items()},
    }


def _deserialize(payload: Dict[str, Any]) -> RawReading:
    return RawReading(
        device_id=payload["device_id"],
        timestamp=datetime.fromisoformat(payload["timestamp"]),
        values=payload.get("values") or {},
    )


@lru_cache
def build_default_reading_store(path: Optional[str] = None) -> ReadingStore:
    store_path = get_settings().readings_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
