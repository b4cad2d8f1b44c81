"""
Shared HTTP plumbing for the hosted backend.

`SupabaseHTTPClient` owns one `aiohttp.ClientSession` for the REST, storage and
auth endpoints of a Supabase project. It adds the project key headers, forwards
the caller's access token (so the backend's row-level policies apply to the
caller, not to this service) and turns transport problems into
`BackendError` / `BackendTimeoutError`.
"""

import asyncio
import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional

import aiohttp

from core.exceptions import BackendError, BackendTimeoutError

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, set):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(value: Any) -> str:
    return json.dumps(value, default=_json_default)


class SupabaseHTTPClient:
    """Thin aiohttp wrapper around a Supabase project's HTTP API"""

    def __init__(self, base_url: str, anon_key: str, timeout_seconds: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                json_serialize=dumps,
            )
        return self._session

    def headers(self, access_token: Optional[str] = None, **extra: str) -> Dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        headers.update(extra)
        return headers

    async def request(
        self,
        method: str,
        path: str,
        operation: str,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Issue one request and return the decoded JSON body (or None)"""
        url = f"{self.base_url}{path}"
        request_headers = self.headers(access_token, **(headers or {}))

        try:
            async with self._get_session().request(
                method,
                url,
                params=params,
                json=json_body,
                data=data,
                headers=request_headers,
            ) as response:
                body = await response.text()
                if response.status >= 400:
                    reason = self._error_message(body) or response.reason or "request failed"
                    logger.warning(
                        f"Backend {operation} returned {response.status}: {reason}"
                    )
                    raise BackendError(operation, reason, status=response.status)
        except asyncio.TimeoutError:
            raise BackendTimeoutError(operation, self.timeout_seconds)
        except aiohttp.ClientError as e:
            raise BackendError(operation, str(e) or type(e).__name__)

        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError:
            return body

    @staticmethod
    def _error_message(body: str) -> Optional[str]:
        if not body:
            return None
        try:
            payload = json.loads(body)
        except ValueError:
            return body[:200]
        if isinstance(payload, dict):
            return (
                payload.get("message")
                or payload.get("msg")
                or payload.get("error_description")
                or payload.get("error")
            )
        return None

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
