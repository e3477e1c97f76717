"""Domain models shared across services."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class Parameter(str, Enum):
    """Water-quality parameters reported by a device."""

    PH = "PH"
    TDS = "TDS"
    TEMP = "TEMP"
    TURBIDITY = "TURBIDITY"


class Severity(str, Enum):
    """Severity tiers assigned per parameter per reading."""

    normal = "Normal"
    warning = "Warning"
    critical = "Critical"


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class RawReading:
    """A single multi-parameter sample recorded by a device."""

    device_id: str
    timestamp: datetime
    values: Mapping[Parameter, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", ensure_utc(self.timestamp))
        normalized = {Parameter(key): float(value) for key, value in self.values.items()}
        for parameter, value in normalized.items():
            if not math.isfinite(value):
                raise ValueError(f"{parameter.value} must be a finite number, got {value!r}.")
        object.__setattr__(self, "values", MappingProxyType(normalized))

    def value_of(self, parameter: Parameter) -> Optional[float]:
        return self.values.get(parameter)


@dataclass(frozen=True, slots=True)
class ParameterStats:
    """Average, minimum and maximum of one parameter within a bucket."""

    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass(frozen=True, slots=True)
class AggregatedBucket:
    """Summary row for one hourly or daily time slot."""

    timestamp: datetime
    stats: Mapping[Parameter, ParameterStats]

    def for_parameter(self, parameter: Parameter) -> ParameterStats:
        return self.stats.get(parameter, ParameterStats())


@dataclass(frozen=True, slots=True)
class Alert:
    """Result of evaluating one parameter of one reading as non-normal."""

    parameter: Parameter
    value: float
    severity: Severity
    message: str
    originator: str
    date_time: str
    status: str = "Active"
    note: Optional[str] = None
