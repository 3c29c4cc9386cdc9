from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the analytics service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_devices(self) -> List[Dict[str, Any]]:
        return self._get("/devices")

    def get_statistics(self, device_id: str, field: str, range_: Optional[str] = None) -> Dict[str, Any]:
        return self._get(f"/devices/{device_id}/statistics", {"field": field, "range": range_})

    def get_trend(
        self,
        device_id: str,
        field: str,
        window: Optional[int] = None,
        range_: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._get(
            f"/devices/{device_id}/trend",
            {"field": field, "window": window, "range": range_},
        )

    def get_health_risk(self, device_id: str, range_: Optional[str] = None) -> Dict[str, Any]:
        return self._get(f"/devices/{device_id}/health-risk", {"range": range_})

    def get_analysis(self, device_id: str, range_: Optional[str] = None) -> Dict[str, Any]:
        return self._get(f"/devices/{device_id}/analysis", {"range": range_})

    def get_comparison(
        self, device_ids: List[str], field: str, range_: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._get("/compare", {"device": device_ids, "field": field, "range": range_})

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = {key: value for key, value in (params or {}).items() if value is not None}
        try:
            response = self._client.get(path, params=query)
            if response.status_code == 404:
                raise typer.BadParameter(self._detail(response) or f"{path} was not found.")
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.RequestError as exc:
            typer.secho(f"Could not reach {self._config.base_url}: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _detail(response: httpx.Response) -> Optional[str]:
        try:
            return response.json().get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            return response.text.strip() or None

    @classmethod
    def _handle_http_error(cls, exc: httpx.HTTPStatusError) -> None:
        detail = cls._detail(exc.response)
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
