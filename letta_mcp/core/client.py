"""Letta REST API communication over an async HTTP client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class LettaAPIError(Exception):
    """Raised when the Letta API answers non-2xx or cannot be reached."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        data: Any = None,
        method: str = "",
        path: str = "",
    ):
        super().__init__(message)
        self.status = status
        self.data = data
        self.method = method
        self.path = path


@dataclass
class ApiResponse:
    """Decoded body plus HTTP status of a successful call."""

    data: Any
    status: int = 200


class LettaClient:
    """
    Talk to a Letta server at ``<base_url>/v1``.

    One client is created per process and shared by every tool handler.
    Call ``aclose()`` (or use ``async with``) when finished.
    """

    def __init__(
        self,
        base_url: str,
        password: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_base = f"{self.base_url}/v1"
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.api_base,
            headers=self._headers(password),
            timeout=timeout,
            transport=transport,
        )

    @staticmethod
    def _headers(password: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if password:
            headers["Authorization"] = f"Bearer {password}"
            headers["X-BARE-PASSWORD"] = f"password {password}"
        return headers

    # ── Requests ──────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        files: Any = None,
        timeout: Optional[float] = None,
    ) -> ApiResponse:
        """Send one request and decode the body, raising ``LettaAPIError`` on failure."""
        kwargs: Dict[str, Any] = {}
        if params:
            kwargs["params"] = {k: v for k, v in params.items() if v is not None}
        if json is not None:
            kwargs["json"] = json
        if files is not None:
            kwargs["files"] = files
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise LettaAPIError(
                f"Request to {method} {path} failed: {exc}",
                method=method,
                path=path,
            ) from exc

        data = self._decode(response)
        if response.is_error:
            raise LettaAPIError(
                f"Letta API returned {response.status_code} for {method} {path}",
                status=response.status_code,
                data=data,
                method=method,
                path=path,
            )
        return ApiResponse(data=data, status=response.status_code)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)

    # ── Cleanup ───────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "LettaClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
