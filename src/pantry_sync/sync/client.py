"""HTTP client for the remote record store."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic import ValidationError as PydanticValidationError

from pantry_sync.errors import AuthError, NetworkError, RemoteError
from pantry_sync.sync.protocol import ExpirySummaryPayload, RecordBody, RemoteRecord
from pantry_sync.sync.remote import RemoteClient

if TYPE_CHECKING:
    from pantry_sync.core.expiry import ExpirySummary
    from pantry_sync.core.record import Record

logger = logging.getLogger(__name__)


class HttpRemoteClient(RemoteClient):
    """
    aiohttp implementation of the remote store contract.

    Usage:
        async with HttpRemoteClient("https://api.example.com") as remote:
            created = await remote.create(record, token)
            await remote.update(created.remote_id, edited, token)

    Or with a session owned by the caller:
        remote = HttpRemoteClient(url, session=session)
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Root URL of the remote API (http:// or https://)
            timeout: Total timeout per request in seconds
            session: Optional externally managed session (not closed by us)
        """
        if not base_url.startswith(("http://", "https://")):
            raise ValueError("Invalid remote URL scheme: must start with http:// or https://")

        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> HttpRemoteClient:
        self._ensure_session()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    # ========== Record Operations ==========

    async def create(self, record: Record, token: str) -> RemoteRecord | None:
        _, body = await self._request(
            "POST", "/records", token, json_data=self._record_body(record)
        )
        if not isinstance(body, dict) or not body.get("id"):
            logger.warning("Remote create for record %d returned no id", record.local_id)
            return None
        return self._parse_record(body)

    async def update(self, remote_id: str, record: Record, token: str) -> None:
        await self._request(
            "PUT", f"/records/{remote_id}", token, json_data=self._record_body(record)
        )

    async def delete(self, remote_id: str, token: str) -> None:
        await self._request("DELETE", f"/records/{remote_id}", token, allow_not_found=True)

    async def get_by_id(self, remote_id: str, token: str) -> RemoteRecord | None:
        status, body = await self._request(
            "GET", f"/records/{remote_id}", token, allow_not_found=True
        )
        if status == 404 or not body:
            return None
        return self._parse_record(body)

    async def list_all(self, token: str) -> list[RemoteRecord]:
        _, body = await self._request("GET", "/records", token)
        if body is None:
            return []
        items = body.get("records", []) if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise RemoteError("Malformed record list from remote")
        return [self._parse_record(item) for item in items]

    async def send_expiry_summary(self, summary: ExpirySummary, token: str) -> None:
        payload = ExpirySummaryPayload.from_summary(summary)
        await self._request(
            "POST", "/notifications/expiry", token, json_data=payload.model_dump(mode="json")
        )

    # ========== Internals ==========

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    @staticmethod
    def _record_body(record: Record) -> dict[str, Any]:
        return RecordBody.from_record(record).model_dump(mode="json")

    @staticmethod
    def _parse_record(data: Any) -> RemoteRecord:
        try:
            return RemoteRecord.model_validate(data)
        except PydanticValidationError as e:
            raise RemoteError(f"Malformed record from remote: {e.error_count()} errors") from e

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        json_data: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> tuple[int, Any]:
        """Make an authorized request. Returns (status, decoded JSON body or None)."""
        session = self._ensure_session()
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}

        try:
            async with session.request(
                method,
                url,
                json=json_data,
                headers=headers,
                timeout=self._timeout,
            ) as response:
                text = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(f"{method} {path} failed: {e or type(e).__name__}") from e

        if status in (401, 403):
            raise AuthError(f"{method} {path} rejected with status {status}")
        if status == 404 and allow_not_found:
            return status, None
        if status >= 400:
            raise RemoteError(f"{method} {path} returned {status}: {text[:200]}", status_code=status)

        if not text.strip():
            return status, None
        try:
            return status, json.loads(text)
        except json.JSONDecodeError as e:
            raise RemoteError(f"{method} {path} returned invalid JSON", status_code=status) from e
