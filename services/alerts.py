"""Alert bookkeeping: escalation, back-to-normal notices and lifecycle moves."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from threading import Lock
from typing import Iterable, List, Optional
from uuid import uuid4

from app.schemas import AlertLifecycle, AlertRecord, AlertStatus
from datastore.documents import AlertTable
from models.records import Alert, Parameter, RawReading, Severity
from services.evaluator import DATE_TIME_FORMAT

logger = logging.getLogger(__name__)


class AlertManager:
    """Turns evaluator output into stored alerts and moves them through their lifecycle."""

    def __init__(self, table: AlertTable) -> None:
        self.table = table
        # Serializes check-then-write sequences across request threads.
        self._lock = Lock()

    def record_evaluation(
        self, reading: RawReading, alerts: Iterable[Alert], now: datetime
    ) -> List[str]:
        """Store new or escalated alerts and resolve parameters back in range.

        Returns a human-readable description of every action taken.
        """
        with self._lock:
            actions = self._apply_evaluation(reading, alerts, now)

        if actions:
            logger.info(
                "Recorded alert changes",
                extra={"device_id": reading.device_id, "alert_count": len(actions)},
            )
        return actions

    def _apply_evaluation(
        self, reading: RawReading, alerts: Iterable[Alert], now: datetime
    ) -> List[str]:
        actions: List[str] = []
        abnormal = {alert.parameter: alert for alert in alerts}

        for parameter, alert in abnormal.items():
            existing = self._find_active(alert.originator, parameter)
            if existing is None:
                self._create(alert, now)
                actions.append(f"Created new '{parameter.value}' alert.")
                continue
            if existing.severity == alert.severity:
                continue
            self._retire(existing, AlertStatus.escalated)
            actions.append(f"Escalated existing '{parameter.value}' alert.")
            self._create(alert, now)
            actions.append(f"Created new escalated '{parameter.value}' alert.")

        for parameter, value in reading.values.items():
            if parameter in abnormal:
                continue
            existing = self._find_active(reading.device_id, parameter)
            if existing is None:
                continue
            self._retire(existing, AlertStatus.resolved)
            actions.append(f"Resolved existing '{parameter.value}' alert.")
            self._create_back_to_normal(reading, parameter, value, now)
            actions.append("Created 'Back to Normal' notification.")
        return actions

    def list_alerts(
        self,
        lifecycle: Optional[AlertLifecycle] = None,
        severity: Optional[Severity] = None,
        originator: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[AlertRecord]:
        def matches(record: AlertRecord) -> bool:
            if record.is_deleted != include_deleted:
                return False
            if lifecycle is not None and record.lifecycle != lifecycle:
                return False
            if severity is not None and record.severity != severity:
                return False
            return originator is None or record.originator == originator

        records = self.table.scan(matches)
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def acknowledge(self, alert_id: str, now: datetime) -> AlertRecord:
        def mark(record: AlertRecord) -> AlertRecord:
            record.acknowledged = True
            record.acknowledged_at = now
            return record

        if not self.table.update_items([alert_id], mark):
            raise KeyError(f"Alert {alert_id!r} not found.")
        logger.info("Alert acknowledged", extra={"alert_id": alert_id})
        record = self.table.get_item(alert_id)
        if record is None:
            raise KeyError(f"Alert {alert_id!r} not found.")
        return record

    def soft_delete(self, alert_ids: Iterable[str], now: datetime) -> int:
        def mark(record: AlertRecord) -> AlertRecord:
            record.is_deleted = True
            record.deleted_at = now
            return record

        updated = self.table.update_items(alert_ids, mark)
        logger.info("Alerts marked as deleted", extra={"alert_count": updated})
        return updated

    def restore(self, alert_ids: Iterable[str]) -> int:
        def unmark(record: AlertRecord) -> AlertRecord:
            record.is_deleted = False
            record.deleted_at = None
            return record

        updated = self.table.update_items(alert_ids, unmark)
        logger.info("Alerts restored", extra={"alert_count": updated})
        return updated

    def advance_lifecycle(
        self,
        now: datetime,
        active_to_recent: timedelta,
        recent_to_history: timedelta,
        purge_grace: timedelta,
    ) -> None:
        """Clear stale back-to-normal notices, archive recent alerts and purge deletions."""

        cleared_ids = [
            record.alert_id
            for record in self.table.scan(
                lambda record: record.lifecycle == AlertLifecycle.active
                and record.is_back_to_normal
                and record.created_at <= now - active_to_recent
            )
        ]

        def clear(record: AlertRecord) -> AlertRecord:
            record.lifecycle = AlertLifecycle.recent
            record.status = AlertStatus.cleared
            return record

        cleared = self.table.update_items(cleared_ids, clear)

        archive_ids = [
            record.alert_id
            for record in self.table.scan(
                lambda record: record.lifecycle == AlertLifecycle.recent
                and record.created_at <= now - recent_to_history
            )
        ]

        def archive(record: AlertRecord) -> AlertRecord:
            record.lifecycle = AlertLifecycle.history
            return record

        archived = self.table.update_items(archive_ids, archive)

        purged = 0
        for record in self.table.scan(
            lambda record: record.is_deleted
            and record.deleted_at is not None
            and record.deleted_at <= now - purge_grace
        ):
            if self.table.delete_item(record.alert_id):
                purged += 1

        if cleared or archived or purged:
            logger.info(
                "Advanced alert lifecycle",
                extra={"alert_count": cleared + archived + purged},
            )

    def _find_active(self, originator: str, parameter: Parameter) -> Optional[AlertRecord]:
        matches = self.table.scan(
            lambda record: record.originator == originator
            and record.parameter == parameter
            and record.lifecycle == AlertLifecycle.active
            and not record.is_deleted
            and not record.is_back_to_normal
        )
        if not matches:
            return None
        return max(matches, key=lambda record: record.created_at)

    def _retire(self, record: AlertRecord, status: AlertStatus) -> None:
        def move(current: AlertRecord) -> AlertRecord:
            current.status = status
            current.lifecycle = AlertLifecycle.recent
            return current

        self.table.update_items([record.alert_id], move)

    def _create(self, alert: Alert, now: datetime) -> AlertRecord:
        record = AlertRecord(
            alert_id=str(uuid4()),
            parameter=alert.parameter,
            value=alert.value,
            severity=alert.severity,
            message=alert.message,
            originator=alert.originator,
            date_time=alert.date_time,
            created_at=now,
            note=alert.note,
        )
        self.table.put_item(record)
        logger.info(
            "Alert raised",
            extra={
                "device_id": alert.originator,
                "parameter": alert.parameter.value,
                "severity": alert.severity.value,
                "alert_id": record.alert_id,
            },
        )
        return record

    def _create_back_to_normal(
        self, reading: RawReading, parameter: Parameter, value: float, now: datetime
    ) -> AlertRecord:
        record = AlertRecord(
            alert_id=str(uuid4()),
            parameter=parameter,
            value=value,
            severity=Severity.normal,
            message=f"{parameter.value} is back to normal",
            originator=reading.device_id,
            date_time=reading.timestamp.strftime(DATE_TIME_FORMAT),
            created_at=now,
            is_back_to_normal=True,
        )
        self.table.put_item(record)
        return record
