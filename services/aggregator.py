"""Time-bucketed aggregation of sensor readings for charting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Protocol

from models.records import (
    AggregatedBucket,
    Parameter,
    ParameterStats,
    RawReading,
    ensure_utc,
)

logger = logging.getLogger(__name__)

HOURLY_KEY_FORMAT = "%Y-%m-%d-%H"
DAILY_KEY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class RangeSpec:
    """A supported lookback window and its bucket granularity."""

    name: str
    duration: timedelta
    key_format: str


RANGES: Dict[str, RangeSpec] = {
    "24h": RangeSpec("24h", timedelta(days=1), HOURLY_KEY_FORMAT),
    "7d": RangeSpec("7d", timedelta(days=7), DAILY_KEY_FORMAT),
    "30d": RangeSpec("30d", timedelta(days=30), DAILY_KEY_FORMAT),
}

DEFAULT_RANGE = "7d"


def resolve_range(value: Optional[str]) -> RangeSpec:
    """Return the window for ``value``, falling back to the 7-day default."""

    window = RANGES.get(value) if value is not None else None
    if window is None:
        if value is not None:
            logger.debug("Unrecognized range, using default", extra={"range": value})
        return RANGES[DEFAULT_RANGE]
    return window


class ReadingSource(Protocol):
    def query(
        self, device_id: str, start: datetime, end: datetime
    ) -> List[RawReading]: ...


@dataclass
class _Accumulator:
    count: int = 0
    total: float = 0.0
    min_value: float | None = None
    max_value: float | None = None

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        if self.min_value is None or value < self.min_value:
            self.min_value = value
        if self.max_value is None or value > self.max_value:
            self.max_value = value

    def stats(self) -> ParameterStats:
        if not self.count:
            return ParameterStats()
        return ParameterStats(
            avg=self.total / self.count, min=self.min_value, max=self.max_value
        )


@dataclass
class BucketGroup:
    """Intermediate state of one bucket between the group and project stages."""

    key: str
    timestamp: datetime
    accumulators: Dict[Parameter, _Accumulator] = field(
        default_factory=lambda: {parameter: _Accumulator() for parameter in Parameter}
    )


def filter_readings(
    readings: Iterable[RawReading], device_id: str, start: datetime, end: datetime
) -> List[RawReading]:
    return [
        reading
        for reading in readings
        if reading.device_id == device_id and start <= reading.timestamp <= end
    ]


def group_readings(readings: Iterable[RawReading], key_format: str) -> List[BucketGroup]:
    groups: Dict[str, BucketGroup] = {}
    for reading in readings:
        key = reading.timestamp.astimezone(timezone.utc).strftime(key_format)
        group = groups.get(key)
        if group is None:
            group = BucketGroup(key=key, timestamp=reading.timestamp)
            groups[key] = group
        for parameter, value in reading.values.items():
            if value is None:
                continue
            group.accumulators[parameter].add(value)
    return list(groups.values())


def order_groups(groups: Iterable[BucketGroup]) -> List[BucketGroup]:
    # Fixed-width key formats make string order chronological.
    return sorted(groups, key=lambda group: group.key)


def project_groups(groups: Iterable[BucketGroup]) -> List[AggregatedBucket]:
    return [
        AggregatedBucket(
            timestamp=group.timestamp,
            stats={
                parameter: accumulator.stats()
                for parameter, accumulator in group.accumulators.items()
            },
        )
        for group in groups
    ]


class ReadingAggregator:
    """Downsamples a device's readings into hourly or daily summaries."""

    def __init__(self, source: ReadingSource) -> None:
        self.source = source

    def aggregate(
        self,
        device_id: str,
        range_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[AggregatedBucket]:
        window = resolve_range(range_name)
        end = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        start = end - window.duration

        readings = self.source.query(device_id, start, end)
        matched = filter_readings(readings, device_id, start, end)
        buckets = project_groups(order_groups(group_readings(matched, window.key_format)))

        logger.debug(
            "Aggregated readings",
            extra={
                "device_id": device_id,
                "range": window.name,
                "reading_count": len(matched),
                "bucket_count": len(buckets),
            },
        )
        return buckets
