from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the WaterGuard service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def get_history(self, device_id: str, range_name: Optional[str] = None) -> Optional[List[Dict[str, Any]]]:
        """Return aggregated buckets, or ``None`` when the range holds no data."""
        params = {"range": range_name} if range_name else None
        try:
            response = self._client.get(f"/api/readings/{device_id}", params=params)
            if response.status_code == 404:
                return None
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def send_reading(self, device_id: str, values: Dict[str, float]) -> Dict[str, Any]:
        try:
            response = self._client.post(
                "/api/readings", json={"device_id": device_id, "values": values}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def list_alerts(
        self,
        lifecycle: Optional[str] = None,
        severity: Optional[str] = None,
        originator: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {
            key: value
            for key, value in (
                ("lifecycle", lifecycle),
                ("severity", severity),
                ("originator", originator),
            )
            if value
        }
        try:
            response = self._client.get("/api/alerts", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    def get_thresholds(self, device_id: str) -> Dict[str, Any]:
        try:
            response = self._client.get(f"/api/devices/{device_id}/thresholds")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
