"""Classification of raw readings against water-quality thresholds.

Everything here is a pure function of its arguments so the same rules can run
at ingestion time, in a dry-run endpoint or in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from models.records import Alert, Parameter, RawReading, Severity
from models.thresholds import DEFAULT_THRESHOLDS, ThresholdConfiguration

SHUT_OFF_NOTE = "Value shut off"
DATE_TIME_FORMAT = "%m/%d/%Y, %I:%M:%S %p"

EVALUATION_ORDER = (
    Parameter.PH,
    Parameter.TURBIDITY,
    Parameter.TEMP,
    Parameter.TDS,
)


@dataclass(frozen=True)
class Classification:
    severity: Severity
    message: str
    note: Optional[str] = None


def format_value(value: float) -> str:
    """Render integral floats without the trailing ``.0``."""

    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _classify_ph(value: float, thresholds: ThresholdConfiguration) -> Classification:
    rules = thresholds.ph
    shown = format_value(value)
    # critical_low itself is Critical; critical_high itself is still Warning.
    if value <= rules.critical_low or value > rules.critical_high:
        return Classification(
            Severity.critical, f"Critical pH level detected ({shown})", SHUT_OFF_NOTE
        )
    if (
        rules.critical_low < value <= rules.warning_low
        or rules.warning_high <= value <= rules.critical_high
    ):
        return Classification(
            Severity.warning, f"pH level is nearing critical levels ({shown})"
        )
    return Classification(Severity.normal, "PH is within the normal range.")


def _classify_turbidity(
    value: float, thresholds: ThresholdConfiguration
) -> Classification:
    rules = thresholds.turbidity
    shown = format_value(value)
    if value >= rules.critical_min:
        return Classification(
            Severity.critical,
            f"Critical turbidity level detected ({shown} NTU)",
            SHUT_OFF_NOTE,
        )
    if rules.normal_max < value < rules.critical_min:
        return Classification(Severity.warning, f"High turbidity detected ({shown} NTU)")
    return Classification(Severity.normal, "TURBIDITY is within the normal range.")


def _classify_temp(value: float, thresholds: ThresholdConfiguration) -> Classification:
    rules = thresholds.temp
    if value >= rules.warning_min:
        return Classification(
            Severity.warning, f"High temperature detected ({format_value(value)}°C)"
        )
    return Classification(Severity.normal, "TEMP is within the normal range.")


def _classify_tds(value: float, thresholds: ThresholdConfiguration) -> Classification:
    rules = thresholds.tds
    shown = format_value(value)
    if value >= rules.critical_min:
        return Classification(Severity.critical, f"Critical TDS level detected ({shown} ppm)")
    if rules.normal_max < value <= rules.warning_max:
        return Classification(Severity.warning, f"High TDS detected ({shown} ppm)")
    return Classification(Severity.normal, "TDS is within the normal range.")


_CLASSIFIERS = {
    Parameter.PH: _classify_ph,
    Parameter.TURBIDITY: _classify_turbidity,
    Parameter.TEMP: _classify_temp,
    Parameter.TDS: _classify_tds,
}


def classify(
    parameter: Parameter,
    value: float,
    thresholds: ThresholdConfiguration = DEFAULT_THRESHOLDS,
) -> Classification:
    return _CLASSIFIERS[Parameter(parameter)](value, thresholds)


def evaluate(
    reading: RawReading,
    thresholds: ThresholdConfiguration = DEFAULT_THRESHOLDS,
) -> List[Alert]:
    """Return one alert per parameter of ``reading`` outside its normal range.

    Parameters absent from the reading are not evaluated.
    """

    alerts: List[Alert] = []
    date_time = reading.timestamp.strftime(DATE_TIME_FORMAT)
    for parameter in EVALUATION_ORDER:
        value = reading.value_of(parameter)
        if value is None:
            continue
        result = classify(parameter, value, thresholds)
        if result.severity is Severity.normal:
            continue
        alerts.append(
            Alert(
                parameter=parameter,
                value=value,
                severity=result.severity,
                message=result.message,
                originator=reading.device_id,
                date_time=date_time,
                note=result.note,
            )
        )
    return alerts
