"""Minimal PostgREST client for Supabase tables."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from tracker.core.config import SupabaseSettings
from tracker.utils.http import RetryConfig, request_with_retry


class SupabaseRestError(Exception):
    """Raised when a table request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SupabaseRestClient:
    """
    Query and mutate tables through ``/rest/v1``.

    Filters are plain equality matches expressed as ``{"column": value}``;
    ``conditions`` carry any other PostgREST operator verbatim.
    When an access token is supplied, requests run as that user so row-level
    security policies apply; otherwise they run with the anon role.
    """

    def __init__(
        self,
        settings: SupabaseSettings,
        *,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._settings = settings
        self._access_token = access_token
        self._transport = transport
        self._retry = retry_config or RetryConfig()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self._settings.base_url}/rest/v1",
            timeout=self._settings.request_timeout,
            transport=self._transport,
            headers={
                "apikey": self._settings.anon_key,
                "Authorization": f"Bearer {self._access_token or self._settings.anon_key}",
            },
        )

    @staticmethod
    def _eq_filters(filters: Mapping[str, Any]) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in filters.items()}

    def _params(
        self,
        filters: Optional[Mapping[str, Any]],
        conditions: Optional[Mapping[str, str]],
    ) -> Dict[str, str]:
        """Equality filters plus raw PostgREST operators such as ``gte.<value>``."""
        params = self._eq_filters(filters or {})
        params.update(conditions or {})
        return params

    async def select(
        self,
        table: str,
        *,
        filters: Mapping[str, Any],
        columns: str = "*",
        conditions: Optional[Mapping[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        params = {"select": columns, **self._params(filters, conditions)}
        try:
            async with self._client() as client:
                response = await request_with_retry(
                    client.get, f"/{table}", params=params, retry_config=self._retry
                )
        except httpx.HTTPStatusError as exc:
            raise SupabaseRestError(
                exc.response.text, status_code=exc.response.status_code
            ) from exc
        return response.json()

    async def select_one(
        self,
        table: str,
        *,
        filters: Mapping[str, Any],
        columns: str = "*",
        conditions: Optional[Mapping[str, str]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Return the first matching row or None."""
        rows = await self.select(
            table, filters=filters, columns=columns, conditions=conditions
        )
        return rows[0] if rows else None

    async def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        async with self._client() as client:
            response = await client.post(
                f"/{table}",
                json=dict(row),
                headers={"Prefer": "return=representation"},
            )
        if response.status_code not in (httpx.codes.CREATED, httpx.codes.OK):
            raise SupabaseRestError(response.text, status_code=response.status_code)
        body = response.json()
        if isinstance(body, list):
            return body[0] if body else dict(row)
        return body

    async def upsert(
        self, table: str, row: Mapping[str, Any], *, on_conflict: str
    ) -> None:
        """Insert ``row`` or overwrite the row sharing the ``on_conflict`` columns."""
        async with self._client() as client:
            response = await client.post(
                f"/{table}",
                params={"on_conflict": on_conflict},
                json=dict(row),
                headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
            )
        if response.status_code not in (
            httpx.codes.CREATED,
            httpx.codes.OK,
            httpx.codes.NO_CONTENT,
        ):
            raise SupabaseRestError(response.text, status_code=response.status_code)

    async def update(
        self, table: str, values: Mapping[str, Any], *, filters: Mapping[str, Any]
    ) -> None:
        async with self._client() as client:
            response = await client.patch(
                f"/{table}",
                params=self._eq_filters(filters),
                json=dict(values),
                headers={"Prefer": "return=minimal"},
            )
        if response.status_code not in (httpx.codes.OK, httpx.codes.NO_CONTENT):
            raise SupabaseRestError(response.text, status_code=response.status_code)

    async def delete(
        self,
        table: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        conditions: Optional[Mapping[str, str]] = None,
    ) -> None:
        params = self._params(filters, conditions)
        if not params:
            # Unfiltered deletes are never sent.
            raise SupabaseRestError(f"Refusing to delete every row of {table}.")
        async with self._client() as client:
            response = await client.delete(
                f"/{table}", params=params, headers={"Prefer": "return=minimal"}
            )
        if response.status_code not in (httpx.codes.OK, httpx.codes.NO_CONTENT):
            raise SupabaseRestError(response.text, status_code=response.status_code)



__all__ = ["SupabaseRestClient", "SupabaseRestError"]
