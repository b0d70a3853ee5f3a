"""
HTTP client for the remote store.

Every transport failure, every non-2xx answer and every 2xx answer whose
body is not JSON is raised as RemoteStoreError; deciding whether to swallow it is the caller's job.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Union

import httpx

logger = logging.getLogger(__name__)


class RemoteStoreError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        self.status_code = status_code
        self.code = code
        super().__init__(message)


def _iso(fecha: Union[date, str]) -> str:
    return fecha.isoformat() if isinstance(fecha, date) else str(fecha)


class RemoteStore:
    def __init__(self, http: httpx.Client, api_prefix: str = "/api"):
        self.http = http
        self.api_prefix = api_prefix.rstrip("/")

    @classmethod
    def from_url(cls, base_url: str, api_prefix: str = "/api", timeout: float = 10.0) -> "RemoteStore":
        return cls(httpx.Client(base_url=base_url, timeout=timeout), api_prefix=api_prefix)

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.api_prefix}{path}"
        try:
            response = self.http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"{method} {url} failed: {exc}") from exc

        if response.is_error:
            code = None
            try:
                body = response.json()
                code = body.get("code") if isinstance(body, dict) else None
            except ValueError:
                pass
            raise RemoteStoreError(
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
                code=code,
            )
        # A captive portal can answer 200 with an HTML page.
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteStoreError(
                f"{method} {url} returned invalid JSON",
                status_code=response.status_code,
            ) from exc

    # --- snapshots ---

    def push_snapshot(self, usuario_id: str, fecha: Union[date, str], burbujas: list, conexiones: list) -> dict:
        return self._request("POST", "/emociones", json={
            "usuario_id": usuario_id,
            "fecha": _iso(fecha),
            "burbujas": burbujas,
            "conexiones": conexiones,
        })

    def fetch_day(self, usuario_id: str, fecha: Union[date, str]) -> dict:
        return self._request("GET", f"/emociones/{usuario_id}/{_iso(fecha)}")

    def delete_day(self, usuario_id: str, fecha: Union[date, str]) -> dict:
        return self._request("DELETE", f"/emociones/{usuario_id}/{_iso(fecha)}")

    # --- reporting ---

    def fetch_history(self, usuario_id: str) -> list:
        return self._request("GET", f"/emociones/historial/{usuario_id}")

    def fetch_statistics(self, usuario_id: str, dias: int = 7) -> dict:
        return self._request("GET", f"/estadisticas/{usuario_id}", params={"dias": dias})

    def export_all(self, usuario_id: str) -> dict:
        return self._request("GET", f"/exportar/{usuario_id}")
