# SPDX-License-Identifier: MIT
"""Record Store backed by a hosted Postgres REST API (PostgREST)."""

import asyncio
from collections.abc import Sequence
from typing import Any

import aiohttp

from ..config import RealtimeConfig, RecordStoreConfig
from ..constants import (
    DEFAULT_REALTIME_HEARTBEAT_SECONDS,
    DEFAULT_RECORD_STORE_MAX_RETRIES,
    DEFAULT_RECORD_STORE_SCHEMA,
    DEFAULT_RECORD_STORE_TIMEOUT,
)
from ..exceptions import (
    FetchFailedError,
    MutationFailedError,
    RecordStoreError,
    RecordStoreTimeoutError,
)
from ..logging_config import get_detail_logger
from ..retry_utils import call_with_backoff
from .filters import Filter
from .protocols import ChangeHandler, Row, SubscriptionHandle
from .realtime import RealtimeClient


detail_logger = get_detail_logger()


class SupabaseRecordStore:
    """Record Store client for ``/rest/v1`` with realtime subscriptions.

    Reads are retried on connection errors; writes are sent exactly once.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        schema: str = DEFAULT_RECORD_STORE_SCHEMA,
        timeout: float = DEFAULT_RECORD_STORE_TIMEOUT,
        max_retries: int = DEFAULT_RECORD_STORE_MAX_RETRIES,
        heartbeat_seconds: float = DEFAULT_REALTIME_HEARTBEAT_SECONDS,
    ):
        """Initialize the client.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            api_key: API key used as ``apikey`` header and bearer token
            schema: Database schema for all requests
            timeout: Total timeout per request in seconds
            max_retries: Retries for reads on connection errors
            heartbeat_seconds: Realtime heartbeat interval
        """
        if not url:
            raise ValueError("Record Store URL is not configured")
        self.url = url.rstrip("/")
        self.rest_url = f"{self.url}/rest/v1"
        self.api_key = api_key
        self.schema = schema
        self.timeout = timeout
        self.max_retries = max_retries
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept-Profile": schema,
            "Content-Profile": schema,
        }
        self.session: aiohttp.ClientSession | None = None
        self.realtime = RealtimeClient(
            self.url, api_key, schema=schema, heartbeat_seconds=heartbeat_seconds
        )

    @classmethod
    def from_config(
        cls, config: RecordStoreConfig, realtime: RealtimeConfig | None = None
    ) -> "SupabaseRecordStore":
        """Create a client from the ``record_store`` config section."""
        return cls(
            config.url,
            config.api_key,
            schema=config.db_schema,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
            heartbeat_seconds=(
                realtime.heartbeat_seconds
                if realtime
                else DEFAULT_REALTIME_HEARTBEAT_SECONDS
            ),
        )

    async def __aenter__(self) -> "SupabaseRecordStore":
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        await self.realtime.close()
        if self.session:
            await self.session.close()
            self.session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self.session

    async def _request(
        self,
        method: str,
        table: str,
        error_cls: type[RecordStoreError],
        params: list[tuple[str, str]] | None = None,
        payload: Any = None,
    ) -> list[Row]:
        """Send one request and return the rows in the response body.

        Raises:
            error_cls: On an error response
            RecordStoreTimeoutError: On a read timeout
            aiohttp.ClientError: On connection failures, for the caller to retry
        """
        session = self._ensure_session()
        headers = {}
        if method != "GET":
            headers["Prefer"] = "return=representation"

        detail_logger.debug(f"{method} {table} params={params}")
        try:
            async with session.request(
                method,
                f"{self.rest_url}/{table}",
                params=params,
                json=payload,
                headers=headers,
            ) as response:
                if response.status >= 400:
                    body = await self._error_body(response)
                    message = body.get("message") or f"HTTP {response.status}"
                    detail_logger.warning(
                        f"{method} {table} failed with status {response.status}: {message}"
                    )
                    raise error_cls(
                        message,
                        code=str(body.get("code") or response.status),
                        table=table,
                    )
                if response.status == 204:
                    return []
                data = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            detail_logger.warning(f"{method} {table} timed out after {self.timeout}s")
            if error_cls is MutationFailedError:
                raise MutationFailedError(
                    f"Request timed out after {self.timeout}s", code="timeout", table=table
                ) from e
            raise RecordStoreTimeoutError(timeout=self.timeout, table=table) from e

        if data is None:
            return []
        return list(data) if isinstance(data, list) else [data]

    async def _error_body(self, response: aiohttp.ClientResponse) -> dict[str, Any]:
        try:
            body = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            return {"message": await response.text()}
        return body if isinstance(body, dict) else {}

    async def select(
        self, table: str, filters: Sequence[Filter] = (), columns: str = "*"
    ) -> list[Row]:
        params = [("select", columns)] + [f.to_query_param() for f in filters]
        try:
            return await call_with_backoff(
                lambda: self._request("GET", table, FetchFailedError, params=params),
                max_retries=self.max_retries,
                retry_on=(aiohttp.ClientConnectionError,),
                description=f"select {table}",
            )
        except aiohttp.ClientError as e:
            raise FetchFailedError(f"Failed to query {table}: {e}", table=table) from e

    async def _write(
        self,
        method: str,
        table: str,
        filters: Sequence[Filter],
        payload: Any = None,
    ) -> list[Row]:
        params = [f.to_query_param() for f in filters]
        try:
            return await self._request(
                method, table, MutationFailedError, params=params, payload=payload
            )
        except aiohttp.ClientError as e:
            raise MutationFailedError(f"Failed to write {table}: {e}", table=table) from e

    async def insert(self, table: str, payload: Row | list[Row]) -> list[Row]:
        return await self._write("POST", table, (), payload)

    async def update(
        self, table: str, filters: Sequence[Filter], payload: Row
    ) -> list[Row]:
        if not filters:
            raise ValueError("Refusing to update every row: filters are required")
        return await self._write("PATCH", table, filters, payload)

    async def delete(self, table: str, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("Refusing to delete every row: filters are required")
        return await self._write("DELETE", table, filters)

    async def subscribe(
        self, table: str, filter: Filter | None, on_change: ChangeHandler
    ) -> SubscriptionHandle:
        return await self.realtime.subscribe(table, filter, on_change)

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        await self.realtime.unsubscribe(handle)
