"""Tests for alert escalation, resolution and lifecycle transitions."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas import AlertLifecycle, AlertRecord, AlertStatus
from datastore.documents import DocumentTable
from models.records import RawReading, Severity
from services.alerts import AlertManager
from services.evaluator import evaluate

NOW = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
INTERVALS = {
    "active_to_recent": timedelta(seconds=30),
    "recent_to_history": timedelta(minutes=5),
    "purge_grace": timedelta(minutes=5),
}


@pytest.fixture
def manager() -> AlertManager:
    table = DocumentTable(name="alerts", model=AlertRecord, key_field="alert_id")
    return AlertManager(table)


def _ingest(manager: AlertManager, now: datetime = NOW, **values: float) -> list[str]:
    reading = RawReading(device_id="PS01-DEV", timestamp=now, values=values)
    return manager.record_evaluation(reading, evaluate(reading), now)


def test_new_abnormal_reading_creates_active_alert(manager: AlertManager) -> None:
    actions = _ingest(manager, PH=6.2, TDS=500)

    assert actions == ["Created new 'PH' alert."]
    (record,) = manager.list_alerts()
    assert record.severity is Severity.warning
    assert record.lifecycle is AlertLifecycle.active
    assert record.status is AlertStatus.active


def test_repeated_severity_does_not_duplicate(manager: AlertManager) -> None:
    _ingest(manager, PH=6.2)

    assert _ingest(manager, PH=6.3) == []
    assert len(manager.list_alerts()) == 1


def test_changed_severity_escalates(manager: AlertManager) -> None:
    _ingest(manager, PH=6.2)

    actions = _ingest(manager, NOW + timedelta(seconds=5), PH=5.5)

    assert actions == [
        "Escalated existing 'PH' alert.",
        "Created new escalated 'PH' alert.",
    ]
    (active,) = manager.list_alerts(lifecycle=AlertLifecycle.active)
    assert active.severity is Severity.critical
    assert active.note == "Value shut off"
    (recent,) = manager.list_alerts(lifecycle=AlertLifecycle.recent)
    assert recent.status is AlertStatus.escalated


def test_back_to_normal_resolves_and_notifies(manager: AlertManager) -> None:
    _ingest(manager, TURBIDITY=12)

    actions = _ingest(manager, NOW + timedelta(seconds=5), TURBIDITY=2)

    assert actions == [
        "Resolved existing 'TURBIDITY' alert.",
        "Created 'Back to Normal' notification.",
    ]
    (notice,) = manager.list_alerts(lifecycle=AlertLifecycle.active)
    assert notice.is_back_to_normal is True
    assert notice.message == "TURBIDITY is back to normal"
    (resolved,) = manager.list_alerts(lifecycle=AlertLifecycle.recent)
    assert resolved.status is AlertStatus.resolved

    assert _ingest(manager, NOW + timedelta(seconds=10), TURBIDITY=2) == []


def test_list_alerts_filters_and_orders_newest_first(manager: AlertManager) -> None:
    _ingest(manager, PH=6.2)
    _ingest(manager, NOW + timedelta(seconds=1), TDS=1300)

    newest_first = manager.list_alerts()
    assert [record.severity for record in newest_first] == [Severity.critical, Severity.warning]
    assert len(manager.list_alerts(severity=Severity.critical)) == 1
    assert manager.list_alerts(originator="PS02-DEV") == []


def test_acknowledge(manager: AlertManager) -> None:
    _ingest(manager, PH=6.2)
    (record,) = manager.list_alerts()

    acknowledged = manager.acknowledge(record.alert_id, NOW)

    assert acknowledged.acknowledged is True
    assert acknowledged.acknowledged_at == NOW
    with pytest.raises(KeyError):
        manager.acknowledge("missing", NOW)


def test_acknowledge_raises_when_alert_is_purged_midway(manager: AlertManager, monkeypatch) -> None:
    _ingest(manager, PH=6.2)
    (record,) = manager.list_alerts()
    original_update = manager.table.update_items

    def update_then_purge(keys, mutate):
        updated = original_update(keys, mutate)
        manager.table.delete_item(record.alert_id)
        return updated

    monkeypatch.setattr(manager.table, "update_items", update_then_purge)

    with pytest.raises(KeyError):
        manager.acknowledge(record.alert_id, NOW)


def test_concurrent_evaluations_raise_a_single_alert(manager: AlertManager, monkeypatch) -> None:
    original_scan = manager.table.scan

    def slow_scan(predicate=None):
        matches = original_scan(predicate)
        time.sleep(0.01)
        return matches

    monkeypatch.setattr(manager.table, "scan", slow_scan)
    workers = 8
    barrier = threading.Barrier(workers)

    def ingest_after_barrier(_index: int) -> list[str]:
        barrier.wait()
        return _ingest(manager, PH=5.0)

    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(ingest_after_barrier, range(workers)))

    assert sorted(results, key=len, reverse=True)[0] == ["Created new 'PH' alert."]
    assert sum(len(actions) for actions in results) == 1
    assert len(manager.list_alerts(lifecycle=AlertLifecycle.active)) == 1


def test_soft_delete_and_restore(manager: AlertManager) -> None:
    _ingest(manager, PH=6.2)
    (record,) = manager.list_alerts()

    assert manager.soft_delete([record.alert_id, "missing"], NOW) == 1
    assert manager.list_alerts() == []
    assert len(manager.list_alerts(include_deleted=True)) == 1

    assert manager.restore([record.alert_id]) == 1
    (restored,) = manager.list_alerts()
    assert restored.deleted_at is None


def test_advance_lifecycle_clears_archives_and_purges(manager: AlertManager) -> None:
    _ingest(manager, TURBIDITY=12)
    _ingest(manager, NOW + timedelta(seconds=1), TURBIDITY=2)
    _ingest(manager, NOW + timedelta(seconds=2), PH=5.0)
    ph_alert = manager.list_alerts(lifecycle=AlertLifecycle.active)[0]
    manager.soft_delete([ph_alert.alert_id], NOW + timedelta(seconds=2))

    manager.advance_lifecycle(NOW + timedelta(minutes=1), **INTERVALS)

    assert manager.list_alerts(lifecycle=AlertLifecycle.active) == []
    cleared = [
        record
        for record in manager.list_alerts(lifecycle=AlertLifecycle.recent)
        if record.is_back_to_normal
    ]
    assert len(cleared) == 1 and cleared[0].status is AlertStatus.cleared

    manager.advance_lifecycle(NOW + timedelta(minutes=10), **INTERVALS)

    assert manager.list_alerts(lifecycle=AlertLifecycle.recent) == []
    assert len(manager.list_alerts(lifecycle=AlertLifecycle.history)) == 2
    assert manager.list_alerts(include_deleted=True) == []
