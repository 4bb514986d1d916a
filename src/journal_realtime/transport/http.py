"""
REST HTTP client for the journal API (message endpoints).
"""

from typing import Any, Optional

import httpx

from journal_realtime.config import DEFAULT_API_BASE_URL
from journal_realtime.errors import AuthError, RealtimeError

USER_AGENT = "journal-realtime/0.1.0"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def _auth_headers(self, authenticated: bool) -> dict[str, str]:
        headers: dict[str, str] = {}
        if authenticated and self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        authenticated: bool = True,
    ) -> Any:
        resp = await self._client.request(
            method, path, json=json, params=params, headers=self._auth_headers(authenticated),
        )
        if resp.status_code in (401, 403):
            raise AuthError(f"HTTP {resp.status_code}: {resp.text[:200]}", code="http_unauthorized")
        if resp.status_code >= 400:
            raise RealtimeError("http_error", f"HTTP {resp.status_code}: {resp.text[:200]}")
        if not resp.content:
            return None
        return resp.json()

    async def get(self, path: str, authenticated: bool = True) -> Any:
        return await self._request("GET", path, authenticated=authenticated)

    async def post(self, path: str, body: Optional[dict[str, Any]] = None, authenticated: bool = True) -> Any:
        return await self._request("POST", path, json=body, authenticated=authenticated)

    async def put(self, path: str, body: Optional[dict[str, Any]] = None, authenticated: bool = True) -> Any:
        return await self._request("PUT", path, json=body, authenticated=authenticated)

    async def delete(self, path: str, params: Optional[dict[str, str]] = None, authenticated: bool = True) -> Any:
        return await self._request("DELETE", path, params=params, authenticated=authenticated)

    async def close(self) -> None:
        await self._client.aclose()
