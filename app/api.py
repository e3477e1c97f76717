"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AggregatedBucketOut,
    AlertIdsRequest,
    AlertLifecycle,
    AlertOut,
    AlertRecord,
    BulkUpdateResponse,
    IngestResponse,
    ReadingIn,
    ThresholdOverride,
    ThresholdsOut,
    ThresholdUpdateResponse,
)
from models.records import Severity
from services.monitor import (
    MonitoringService,
    NoReadingsFound,
    ResolvedThresholds,
    build_default_monitor,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_monitor() -> MonitoringService:
    return build_default_monitor()


def _thresholds_payload(resolved: ResolvedThresholds) -> dict:
    return {
        "device_id": resolved.device_id,
        "overridden": resolved.overridden,
        "thresholds": resolved.thresholds.to_dict(),
    }


@router.get(
    "/api/readings/{device_id}",
    response_model=List[AggregatedBucketOut],
    summary="Hourly or daily summaries of a device's readings.",
)
def get_reading_history(
    device_id: str,
    range_name: Optional[str] = Query(
        default=None,
        alias="range",
        description="Lookback window: 24h, 7d or 30d. Anything else means 7d.",
    ),
    monitor: MonitoringService = Depends(get_monitor),
) -> List[AggregatedBucketOut]:
    try:
        buckets = monitor.reading_history(device_id, range_name)
    except NoReadingsFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except Exception as exc:
        logger.exception(
            "Error fetching aggregated readings",
            extra={"device_id": device_id, "range": range_name},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error while fetching readings.",
        ) from exc
    return [AggregatedBucketOut.from_bucket(bucket) for bucket in buckets]


@router.post(
    "/api/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=IngestResponse,
    summary="Store a raw reading and evaluate it against the device thresholds.",
)
def ingest_reading(
    payload: ReadingIn,
    monitor: MonitoringService = Depends(get_monitor),
) -> IngestResponse:
    reading = payload.to_domain(received_at=datetime.now(timezone.utc))
    try:
        outcome = monitor.ingest_reading(reading)
    except Exception as exc:
        logger.exception("Error processing sensor reading", extra={"device_id": reading.device_id})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error while processing reading.",
        ) from exc
    return IngestResponse(
        device_id=reading.device_id,
        timestamp=reading.timestamp,
        alerts=[AlertOut.from_alert(alert) for alert in outcome.alerts],
        actions=outcome.actions,
    )


@router.post(
    "/api/readings/evaluate",
    response_model=List[AlertOut],
    summary="Evaluate a reading without storing it.",
)
def evaluate_reading(
    payload: ReadingIn,
    monitor: MonitoringService = Depends(get_monitor),
) -> List[AlertOut]:
    reading = payload.to_domain(received_at=datetime.now(timezone.utc))
    return [AlertOut.from_alert(alert) for alert in monitor.preview_alerts(reading)]


@router.get(
    "/api/alerts",
    response_model=List[AlertRecord],
    summary="List alerts, newest first.",
)
def list_alerts(
    lifecycle: Optional[AlertLifecycle] = None,
    severity: Optional[Severity] = None,
    originator: Optional[str] = None,
    include_deleted: bool = False,
    monitor: MonitoringService = Depends(get_monitor),
) -> List[AlertRecord]:
    return monitor.alert_manager.list_alerts(
        lifecycle=lifecycle,
        severity=severity,
        originator=originator,
        include_deleted=include_deleted,
    )


@router.post(
    "/api/alerts/{alert_id}/acknowledge",
    response_model=AlertRecord,
    summary="Mark an alert as seen by an operator.",
)
def acknowledge_alert(
    alert_id: str,
    monitor: MonitoringService = Depends(get_monitor),
) -> AlertRecord:
    try:
        return monitor.alert_manager.acknowledge(alert_id, datetime.now(timezone.utc))
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Alert {alert_id} not found.",
        ) from exc


@router.put(
    "/api/alerts/delete",
    response_model=BulkUpdateResponse,
    summary="Soft-delete a batch of alerts.",
)
def delete_alerts(
    payload: AlertIdsRequest,
    monitor: MonitoringService = Depends(get_monitor),
) -> BulkUpdateResponse:
    updated = monitor.alert_manager.soft_delete(payload.ids, datetime.now(timezone.utc))
    return BulkUpdateResponse(updated=updated)


@router.put(
    "/api/alerts/restore",
    response_model=BulkUpdateResponse,
    summary="Restore a batch of soft-deleted alerts.",
)
def restore_alerts(
    payload: AlertIdsRequest,
    monitor: MonitoringService = Depends(get_monitor),
) -> BulkUpdateResponse:
    return BulkUpdateResponse(updated=monitor.alert_manager.restore(payload.ids))


@router.get(
    "/api/devices/{device_id}/thresholds",
    response_model=ThresholdsOut,
    summary="Thresholds in effect for a device.",
)
def get_device_thresholds(
    device_id: str,
    monitor: MonitoringService = Depends(get_monitor),
) -> ThresholdsOut:
    return ThresholdsOut(**_thresholds_payload(monitor.resolve_thresholds(device_id)))


@router.put(
    "/api/devices/{device_id}/thresholds",
    response_model=ThresholdUpdateResponse,
    summary="Override some of a device's thresholds.",
)
def update_device_thresholds(
    device_id: str,
    payload: ThresholdOverride,
    monitor: MonitoringService = Depends(get_monitor),
) -> ThresholdUpdateResponse:
    try:
        resolved = monitor.update_thresholds(device_id, payload.as_mapping())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    return ThresholdUpdateResponse(**_thresholds_payload(resolved), changes=resolved.changes)


@router.delete(
    "/api/devices/{device_id}/thresholds",
    response_model=ThresholdUpdateResponse,
    summary="Drop a device's overrides and fall back to the defaults.",
)
def reset_device_thresholds(
    device_id: str,
    monitor: MonitoringService = Depends(get_monitor),
) -> ThresholdUpdateResponse:
    resolved = monitor.reset_thresholds(device_id)
    return ThresholdUpdateResponse(**_thresholds_payload(resolved), changes=resolved.changes)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
