"""Orchestration of ingestion, aggregation, alerting and device thresholds."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from threading import Event
from typing import List, Optional

from app.schemas import DeviceThresholdRecord
from datastore.documents import (
    AlertTable,
    DeviceThresholdTable,
    build_default_alert_table,
    build_default_threshold_table,
)
from datastore.readings import ReadingStore, build_default_reading_store
from models.records import AggregatedBucket, Alert, RawReading
from models.thresholds import (
    DEFAULT_THRESHOLDS,
    ThresholdConfiguration,
    describe_changes,
    merge_thresholds,
)
from services.aggregator import ReadingAggregator
from services.alerts import AlertManager
from services.evaluator import evaluate
from settings import get_settings

logger = logging.getLogger(__name__)


class NoReadingsFound(LookupError):
    """The device has no readings in the requested window."""


@dataclass(frozen=True)
class LifecycleIntervals:
    active_to_recent: timedelta = timedelta(seconds=30)
    recent_to_history: timedelta = timedelta(minutes=5)
    purge_grace: timedelta = timedelta(minutes=5)


@dataclass
class IngestOutcome:
    reading: RawReading
    alerts: List[Alert] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)


@dataclass
class ResolvedThresholds:
    device_id: str
    thresholds: ThresholdConfiguration
    overridden: bool
    changes: List[str] = field(default_factory=list)


class MonitoringService:
    """Coordinates the reading store, the evaluator and alert bookkeeping."""

    def __init__(
        self,
        store: ReadingStore,
        alerts: AlertTable,
        thresholds: DeviceThresholdTable,
        intervals: LifecycleIntervals = LifecycleIntervals(),
        sweep_interval: float = 30.0,
    ) -> None:
        self.store = store
        self.thresholds = thresholds
        self.aggregator = ReadingAggregator(store)
        self.alert_manager = AlertManager(alerts)
        self.intervals = intervals
        self.sweep_interval = sweep_interval
        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="alert-sweep")
        self._stop = Event()
        self._sweeper: Optional[Future[None]] = None

    def ingest_reading(self, reading: RawReading, now: Optional[datetime] = None) -> IngestOutcome:
        """Persist a reading and raise or resolve alerts for it."""
        received_at = now or datetime.now(timezone.utc)
        self.store.append(reading)
        alerts = evaluate(reading, self.resolve_thresholds(reading.device_id).thresholds)
        actions = self.alert_manager.record_evaluation(reading, alerts, received_at)
        logger.debug(
            "Reading ingested",
            extra={"device_id": reading.device_id, "alert_count": len(alerts)},
        )
        return IngestOutcome(reading=reading, alerts=alerts, actions=actions)

    def preview_alerts(self, reading: RawReading) -> List[Alert]:
        return evaluate(reading, self.resolve_thresholds(reading.device_id).thresholds)

    def reading_history(
        self, device_id: str, range_name: Optional[str] = None, now: Optional[datetime] = None
    ) -> List[AggregatedBucket]:
        buckets = self.aggregator.aggregate(device_id, range_name, now=now)
        if not buckets:
            raise NoReadingsFound(
                "No readings found for this device in the selected range."
            )
        return buckets

    def resolve_thresholds(self, device_id: str) -> ResolvedThresholds:
        record = self.thresholds.get_item(device_id)
        if record is None or not record.overrides:
            return ResolvedThresholds(device_id, DEFAULT_THRESHOLDS, overridden=False)
        return ResolvedThresholds(
            device_id,
            merge_thresholds(DEFAULT_THRESHOLDS, record.overrides),
            overridden=True,
        )

    def update_thresholds(
        self, device_id: str, overrides: dict, now: Optional[datetime] = None
    ) -> ResolvedThresholds:
        """Layer ``overrides`` on the device's current override and store it.

        Raises ``ValueError`` when the override names unknown limits.
        """
        previous = self.resolve_thresholds(device_id)
        record = self.thresholds.get_item(device_id)
        current = record.overrides if record is not None else {}
        combined = {section: dict(values) for section, values in current.items()}
        for section, values in overrides.items():
            combined.setdefault(section, {}).update(values)
        combined = {section: values for section, values in combined.items() if values}
        if not combined:
            return ResolvedThresholds(device_id, DEFAULT_THRESHOLDS, overridden=False)

        resolved = merge_thresholds(DEFAULT_THRESHOLDS, combined)
        self.thresholds.put_item(
            DeviceThresholdRecord(
                device_id=device_id,
                overrides=combined,
                updated_at=now or datetime.now(timezone.utc),
            )
        )
        changes = describe_changes(previous.thresholds, resolved)
        if changes:
            logger.info(
                "Device thresholds updated",
                extra={"device_id": device_id, "changes": changes},
            )
        return ResolvedThresholds(device_id, resolved, overridden=True, changes=changes)

    def reset_thresholds(self, device_id: str) -> ResolvedThresholds:
        previous = self.resolve_thresholds(device_id)
        self.thresholds.delete_item(device_id)
        changes = describe_changes(previous.thresholds, DEFAULT_THRESHOLDS)
        logger.info(
            "Device thresholds reset to defaults",
            extra={"device_id": device_id, "changes": changes or None},
        )
        return ResolvedThresholds(device_id, DEFAULT_THRESHOLDS, overridden=False, changes=changes)

    def sweep_alerts(self, now: Optional[datetime] = None) -> None:
        self.alert_manager.advance_lifecycle(
            now or datetime.now(timezone.utc),
            active_to_recent=self.intervals.active_to_recent,
            recent_to_history=self.intervals.recent_to_history,
            purge_grace=self.intervals.purge_grace,
        )

    def start(self) -> None:
        """Begin periodic alert lifecycle sweeps in the background."""
        if self._sweeper is not None:
            return
        self._sweeper = self.executor.submit(self._sweep_loop)

    def shutdown(self) -> None:
        """Stop the sweeper and release executor resources."""
        self._stop.set()
        self.executor.shutdown(wait=False, cancel_futures=True)

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            try:
                self.sweep_alerts()
            except Exception:  # noqa: BLE001 - keep the sweeper alive
                logger.exception("Alert lifecycle sweep failed")


@lru_cache
def build_default_monitor() -> MonitoringService:
    """Factory that wires the service with the configured stores."""
    settings = get_settings()
    intervals = LifecycleIntervals(
        active_to_recent=timedelta(seconds=settings.active_to_recent_seconds),
        recent_to_history=timedelta(minutes=settings.recent_to_history_minutes),
        purge_grace=timedelta(minutes=settings.purge_grace_minutes),
    )
    return MonitoringService(
        store=build_default_reading_store(),
        alerts=build_default_alert_table(),
        thresholds=build_default_threshold_table(),
        intervals=intervals,
        sweep_interval=settings.sweep_interval_seconds,
    )
