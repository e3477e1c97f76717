from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, Generic, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel

from app.schemas import AlertRecord, DeviceThresholdRecord
from settings import get_settings

DocumentT = TypeVar("DocumentT", bound=BaseModel)


class DocumentTable(Generic[DocumentT]):
    """Keyed collection of pydantic documents, optionally mirrored to JSON."""

    def __init__(
        self,
        name: str,
        model: Type[DocumentT],
        key_field: str,
        persistence_path: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.model = model
        self.key_field = key_field
        self._items: Dict[str, DocumentT] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: DocumentT) -> None:
        with self._lock:
            self._items[self._key_of(item)] = item.model_copy(deep=True)
            self._persist()

    def get_item(self, key: str) -> Optional[DocumentT]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def delete_item(self, key: str) -> bool:
        with self._lock:
            removed = self._items.pop(key, None)
            if removed is not None:
                self._persist()
            return removed is not None

    def scan(self, predicate: Optional[Callable[[DocumentT], bool]] = None) -> list[DocumentT]:
        """Return deep copies of stored documents, optionally filtered."""

        with self._lock:
            return [
                item.model_copy(deep=True)
                for item in self._items.values()
                if predicate is None or predicate(item)
            ]

    def update_items(
        self, keys: Iterable[str], mutate: Callable[[DocumentT], DocumentT]
    ) -> int:
        """Apply ``mutate`` to each existing document in ``keys`` under one lock."""

        updated = 0
        with self._lock:
            for key in keys:
                item = self._items.get(key)
                if item is None:
                    continue
                self._items[key] = mutate(item.model_copy(deep=True))
                updated += 1
            if updated:
                self._persist()
        return updated

    def _key_of(self, item: DocumentT) -> str:
        return str(getattr(item, self.key_field))

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {key: item.model_dump(mode="json") for key, item in self._items.items()}
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for key, payload in data.items():
            self._items[key] = self.model.model_validate(payload)


AlertTable = DocumentTable[AlertRecord]
DeviceThresholdTable = DocumentTable[DeviceThresholdRecord]


@lru_cache
def build_default_alert_table(path: Optional[str] = None) -> AlertTable:
    table_path = get_settings().alerts_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DocumentTable(
        name="alerts", model=AlertRecord, key_field="alert_id", persistence_path=persistence
    )


@lru_cache
def build_default_threshold_table(path: Optional[str] = None) -> DeviceThresholdTable:
    table_path = get_settings().device_config_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DocumentTable(
        name="device_thresholds",
        model=DeviceThresholdRecord,
        key_field="device_id",
        persistence_path=persistence,
    )
