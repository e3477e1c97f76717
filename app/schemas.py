"""Pydantic schemas for the HTTP API layer and persisted documents."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import (
    AggregatedBucket,
    Alert,
    Parameter,
    ParameterStats,
    RawReading,
    Severity,
)


class AlertLifecycle(str, Enum):
    """Where an alert sits in the active/recent/history flow."""

    active = "Active"
    recent = "Recent"
    history = "History"


class AlertStatus(str, Enum):
    active = "Active"
    resolved = "Resolved"
    escalated = "Escalated"
    cleared = "Cleared"


class ParameterStatsOut(BaseModel):
    avg: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    @classmethod
    def from_stats(cls, stats: ParameterStats) -> "ParameterStatsOut":
        return cls(avg=stats.avg, min=stats.min, max=stats.max)


class AggregatedBucketOut(BaseModel):
    """One chart point: representative timestamp plus per-parameter stats."""

    timestamp: datetime
    PH: ParameterStatsOut
    TDS: ParameterStatsOut
    TEMP: ParameterStatsOut
    TURBIDITY: ParameterStatsOut

    @classmethod
    def from_bucket(cls, bucket: AggregatedBucket) -> "AggregatedBucketOut":
        return cls(
            timestamp=bucket.timestamp,
            **{
                parameter.value: ParameterStatsOut.from_stats(
                    bucket.for_parameter(parameter)
                )
                for parameter in Parameter
            },
        )


class ReadingValues(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    PH: Optional[float] = None
    TDS: Optional[float] = None
    TEMP: Optional[float] = None
    TURBIDITY: Optional[float] = None


class ReadingIn(BaseModel):
    """Payload posted by a device or a gateway for one sample."""

    device_id: str = Field(..., min_length=1)
    timestamp: Optional[datetime] = Field(
        default=None, description="Sample time; defaults to the time of receipt."
    )
    values: ReadingValues

    def to_domain(self, received_at: datetime) -> RawReading:
        present = {
            Parameter(name): value
            for name, value in self.values.model_dump().items()
            if value is not None
        }
        return RawReading(
            device_id=self.device_id,
            timestamp=self.timestamp or received_at,
            values=present,
        )


class AlertOut(BaseModel):
    parameter: Parameter
    value: float
    severity: Severity
    message: str
    originator: str
    date_time: str
    status: str
    note: Optional[str] = None

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertOut":
        return cls(
            parameter=alert.parameter,
            value=alert.value,
            severity=alert.severity,
            message=alert.message,
            originator=alert.originator,
            date_time=alert.date_time,
            status=alert.status,
            note=alert.note,
        )


class IngestResponse(BaseModel):
    device_id: str
    timestamp: datetime
    alerts: List[AlertOut] = Field(default_factory=list)
    actions: List[str] = Field(default_factory=list)


class AlertRecord(BaseModel):
    """Stored alert with its lifecycle metadata."""

    alert_id: str
    parameter: Parameter
    value: Optional[float] = None
    severity: Severity
    message: str
    originator: str
    date_time: str
    created_at: datetime
    lifecycle: AlertLifecycle = AlertLifecycle.active
    status: AlertStatus = AlertStatus.active
    note: Optional[str] = None
    is_back_to_normal: bool = False
    acknowledged: bool = False
    acknowledged_at: Optional[datetime] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None


class AlertIdsRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)


class BulkUpdateResponse(BaseModel):
    updated: int = Field(..., ge=0)


class PHOverride(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    critical_low: Optional[float] = None
    warning_low: Optional[float] = None
    normal_min: Optional[float] = None
    normal_max: Optional[float] = None
    warning_high: Optional[float] = None
    critical_high: Optional[float] = None


class TurbidityOverride(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    normal_max: Optional[float] = None
    warning_max: Optional[float] = None
    critical_min: Optional[float] = None


class TemperatureOverride(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    normal_max: Optional[float] = None
    warning_min: Optional[float] = None


class TDSOverride(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    normal_max: Optional[float] = None
    warning_max: Optional[float] = None
    critical_min: Optional[float] = None


class ThresholdOverride(BaseModel):
    """Sparse per-device override; omitted fields keep the global default."""

    model_config = ConfigDict(extra="forbid")

    ph: Optional[PHOverride] = None
    turbidity: Optional[TurbidityOverride] = None
    temp: Optional[TemperatureOverride] = None
    tds: Optional[TDSOverride] = None

    def as_mapping(self) -> Dict[str, Dict[str, float]]:
        return {
            section: values
            for section, values in self.model_dump(exclude_none=True).items()
            if values
        }


class DeviceThresholdRecord(BaseModel):
    device_id: str
    overrides: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    updated_at: datetime


class ThresholdsOut(BaseModel):
    device_id: str
    overridden: bool
    thresholds: Dict[str, Dict[str, float]]


class ThresholdUpdateResponse(ThresholdsOut):
    changes: List[str] = Field(default_factory=list)
