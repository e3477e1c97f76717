"""Unit tests for the JSON-backed document tables."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from app.schemas import AlertLifecycle, AlertRecord, DeviceThresholdRecord
from datastore.documents import DocumentTable
from models.records import Parameter, Severity


def _alert(alert_id: str = "alert-1") -> AlertRecord:
    return AlertRecord(
        alert_id=alert_id,
        parameter=Parameter.PH,
        value=5.5,
        severity=Severity.critical,
        message="Critical pH level detected (5.5)",
        originator="PS01-DEV",
        date_time="01/01/2024, 12:00:00 PM",
        created_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        note="Value shut off",
    )


def _table(path=None) -> DocumentTable[AlertRecord]:
    return DocumentTable(
        name="alerts", model=AlertRecord, key_field="alert_id", persistence_path=path
    )


def test_put_and_get_round_trip_returns_deep_copy() -> None:
    table = _table()
    original = _alert()

    table.put_item(original)
    fetched = table.get_item(original.alert_id)

    assert fetched == original
    assert fetched is not original

    fetched.acknowledged = True  # type: ignore[union-attr]
    assert table.get_item(original.alert_id).acknowledged is False  # type: ignore[union-attr]


def test_get_item_returns_none_when_missing() -> None:
    assert _table().get_item("missing-id") is None


def test_put_item_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    table = _table(path)
    record = _alert()

    table.put_item(record)

    payload = json.loads(path.read_text())
    assert payload[record.alert_id]["lifecycle"] == "Active"
    assert payload[record.alert_id]["severity"] == "Critical"

    reloaded = _table(path).get_item(record.alert_id)
    assert reloaded == record


def test_scan_filters_and_update_items_counts_existing_keys() -> None:
    table = _table()
    table.put_item(_alert("a"))
    table.put_item(_alert("b"))

    def archive(record: AlertRecord) -> AlertRecord:
        record.lifecycle = AlertLifecycle.history
        return record

    assert table.update_items(["a", "missing"], archive) == 1
    history = table.scan(lambda record: record.lifecycle == AlertLifecycle.history)
    assert [record.alert_id for record in history] == ["a"]
    assert len(table.scan()) == 2


def test_delete_item(tmp_path) -> None:
    table = DocumentTable(
        name="device_thresholds",
        model=DeviceThresholdRecord,
        key_field="device_id",
        persistence_path=tmp_path / "thresholds.json",
    )
    table.put_item(
        DeviceThresholdRecord(
            device_id="PS01-DEV",
            overrides={"ph": {"critical_low": 5.8}},
            updated_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )

    assert table.delete_item("PS01-DEV") is True
    assert table.delete_item("PS01-DEV") is False
    assert json.loads((tmp_path / "thresholds.json").read_text()) == {}


def test_corrupt_file_is_ignored(tmp_path) -> None:
    path = tmp_path / "alerts.json"
    path.write_text("{not json")

    assert _table(path).scan() == []
