"""Supabase client helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from core.config import get_settings

logger = logging.getLogger(__name__)


class SupabaseError(RuntimeError):
    """Raised when Supabase is unreachable or answers with a non-success status."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SupabaseClient:
    """Lightweight async client for Supabase REST endpoints."""

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._url = (url or settings.supabase_url or "").rstrip("/")
        self._key = key or settings.supabase_key
        self._timeout = timeout if timeout is not None else settings.supabase_timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self._url and self._key)

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": str(self._key),
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def fetch(self, endpoint: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        if not self.is_configured:
            raise SupabaseError("Supabase credentials not configured")

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self._url}/rest/v1/{endpoint}", headers=self._headers(), params=params
                )
        except httpx.HTTPError as exc:
            raise SupabaseError(f"Supabase request failed: {exc}") from exc

        if response.status_code == 200:
            return response.json()
        raise SupabaseError(
            f"Supabase error {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )

    async def rpc(self, function: str, payload: Dict[str, Any]) -> Any:
        """Call a Postgres function exposed under ``/rest/v1/rpc``.

        Each call runs inside a single database transaction, which is what the
        write paths rely on for all-or-nothing behaviour.
        """

        if not self.is_configured:
            raise SupabaseError("Supabase credentials not configured")

        try:
            async with self._client() as client:
                response = await client.post(
                    f"{self._url}/rest/v1/rpc/{function}",
                    headers=self._headers(),
                    json=payload,
                )
        except httpx.HTTPError as exc:
            raise SupabaseError(f"Supabase rpc {function} failed: {exc}") from exc

        if response.status_code in {200, 201}:
            return response.json() if response.content else None
        if response.status_code == 204:
            return None
        logger.warning("Supabase rpc %s answered %s", function, response.status_code)
        raise SupabaseError(
            f"Supabase error {response.status_code}: {response.text[:200]}",
            status_code=response.status_code,
        )


__all__ = ["SupabaseClient", "SupabaseError"]
