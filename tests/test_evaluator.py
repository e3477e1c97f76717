"""Unit tests for threshold classification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.records import Parameter, RawReading, Severity
from models.thresholds import DEFAULT_THRESHOLDS, merge_thresholds
from services.evaluator import SHUT_OFF_NOTE, classify, evaluate, format_value

TIMESTAMP = datetime(2024, 1, 2, 8, 30, 5, tzinfo=timezone.utc)


def _reading(**values: float) -> RawReading:
    return RawReading(device_id="PS01-DEV", timestamp=TIMESTAMP, values=values)


@pytest.mark.parametrize(
    ("value", "severity"),
    [
        (5.9, Severity.critical),
        (6.0, Severity.critical),
        (6.2, Severity.warning),
        (6.4, Severity.warning),
        (6.45, Severity.normal),
        (7.5, Severity.normal),
        (8.6, Severity.warning),
        (9.0, Severity.warning),
        (9.5, Severity.critical),
    ],
)
def test_ph_tiers(value: float, severity: Severity) -> None:
    assert classify(Parameter.PH, value).severity is severity


def test_ph_at_critical_low_raises_critical_alert() -> None:
    (alert,) = evaluate(_reading(PH=6.0))

    assert alert.severity is Severity.critical
    assert alert.message == "Critical pH level detected (6)"
    assert alert.note == SHUT_OFF_NOTE


def test_ph_warning_has_no_note() -> None:
    (alert,) = evaluate(_reading(PH=6.4))

    assert alert.severity is Severity.warning
    assert "6.4" in alert.message
    assert alert.note is None


def test_normal_ph_emits_nothing() -> None:
    assert evaluate(_reading(PH=7.5)) == []


@pytest.mark.parametrize(
    ("value", "severity"),
    [
        (3, Severity.normal),
        (5, Severity.normal),
        (5.01, Severity.warning),
        (7, Severity.warning),
        (10, Severity.warning),
        (10.01, Severity.critical),
        (25, Severity.critical),
    ],
)
def test_turbidity_tiers(value: float, severity: Severity) -> None:
    assert classify(Parameter.TURBIDITY, value).severity is severity


def test_turbidity_critical_carries_shut_off_note() -> None:
    (alert,) = evaluate(_reading(TURBIDITY=10.01))

    assert alert.severity is Severity.critical
    assert alert.note == "Value shut off"
    assert alert.message == "Critical turbidity level detected (10.01 NTU)"


def test_turbidity_warning_and_normal() -> None:
    (alert,) = evaluate(_reading(TURBIDITY=7))

    assert alert.severity is Severity.warning
    assert alert.message == "High turbidity detected (7 NTU)"
    assert evaluate(_reading(TURBIDITY=3)) == []


@pytest.mark.parametrize(
    ("value", "severity"),
    [
        (20, Severity.normal),
        (35, Severity.normal),
        (35.01, Severity.warning),
        (80, Severity.warning),
    ],
)
def test_temperature_has_no_critical_tier(value: float, severity: Severity) -> None:
    assert classify(Parameter.TEMP, value).severity is severity


@pytest.mark.parametrize(
    ("value", "severity"),
    [
        (500, Severity.normal),
        (999, Severity.normal),
        (1000, Severity.warning),
        (1200, Severity.warning),
        (1200.01, Severity.critical),
    ],
)
def test_tds_tiers(value: float, severity: Severity) -> None:
    assert classify(Parameter.TDS, value).severity is severity


def test_tds_critical_has_no_shut_off_note() -> None:
    (alert,) = evaluate(_reading(TDS=1200.01))

    assert alert.severity is Severity.critical
    assert alert.note is None
    assert alert.message == "Critical TDS level detected (1200.01 ppm)"
    assert evaluate(_reading(TDS=500)) == []


def test_only_present_parameters_are_evaluated() -> None:
    alerts = evaluate(_reading(PH=9.5))

    assert len(alerts) == 1
    assert alerts[0].parameter is Parameter.PH
    assert alerts[0].severity is Severity.critical


def test_alert_fields_and_order() -> None:
    alerts = evaluate(_reading(TDS=1000, TEMP=40, TURBIDITY=12, PH=6.2))

    assert [alert.parameter for alert in alerts] == [
        Parameter.PH,
        Parameter.TURBIDITY,
        Parameter.TEMP,
        Parameter.TDS,
    ]
    for alert in alerts:
        assert alert.originator == "PS01-DEV"
        assert alert.status == "Active"
        assert alert.date_time == "01/02/2024, 08:30:05 AM"
    assert alerts[2].message == "High temperature detected (40°C)"


def test_evaluation_is_pure() -> None:
    reading = _reading(PH=5.0, TURBIDITY=11, TEMP=36, TDS=1300)

    assert evaluate(reading) == evaluate(reading)


def test_device_override_changes_classification() -> None:
    thresholds = merge_thresholds(DEFAULT_THRESHOLDS, {"tds": {"normal_max": 1100}})

    assert evaluate(_reading(TDS=1000), thresholds) == []
    assert evaluate(_reading(TDS=1000))[0].severity is Severity.warning


def test_format_value() -> None:
    assert format_value(6.0) == "6"
    assert format_value(6.4) == "6.4"
    assert format_value(1200.01) == "1200.01"
