"""HTTP wrapper that attaches the session token and survives one 401.

A 401 triggers exactly one refresh and one retry. If that does not help,
the session is ended and the caller gets "Session expired. Please login
again." Transport failures never raise; they come back as status 0.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from backoffice.client.session import SessionManager

logger = structlog.get_logger()

SESSION_EXPIRED = "Session expired. Please login again."


@dataclass
class ApiResponse:
    status: int
    data: Any = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and 200 <= self.status < 300


def _wrap(response: httpx.Response) -> ApiResponse:
    try:
        body = response.json()
    except ValueError:
        body = None
    if response.is_success:
        return ApiResponse(status=response.status_code, data=body)
    error = body.get("error") if isinstance(body, dict) else None
    return ApiResponse(status=response.status_code, data=body, error=error or "Request failed")


class ApiClient:
    def __init__(self, session: SessionManager):
        self.session = session

    async def _send(
        self, method: str, path: str, token: Optional[str], **kwargs
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self.session.http.request(method, path, headers=headers, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        require_auth: bool = True,
    ) -> ApiResponse:
        token = None
        if require_auth:
            token = await self.session.get_valid_token()
            if token is None:
                return ApiResponse(status=401, error="Authentication required")

        try:
            response = await self._send(method, path, token, json=json, params=params)
            if response.status_code == 401 and require_auth:
                refreshed = await self.session.refresh()
                if refreshed is not None:
                    response = await self._send(method, path, refreshed, json=json, params=params)
                if refreshed is None or response.status_code == 401:
                    logger.info("api_client.session_expired", path=path)
                    await self.session.logout()
                    return ApiResponse(status=401, error=SESSION_EXPIRED)
        except httpx.HTTPError as e:
            logger.warning("api_client.network_error", path=path, error=str(e))
            return ApiResponse(status=0, error=str(e) or "Network error")

        return _wrap(response)

    async def get(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs) -> ApiResponse:
        return await self.request("POST", path, json=json, **kwargs)

    async def put(self, path: str, json: Any = None, **kwargs) -> ApiResponse:
        return await self.request("PUT", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs) -> ApiResponse:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)
