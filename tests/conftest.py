"""Shared fixtures: an in-memory stand-in for the Letta REST API."""

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import pytest

from letta_mcp.core.client import ApiResponse, LettaAPIError
from letta_mcp.core.server import LettaServer
from letta_mcp.validation.config import LettaMCPConfig

Route = Union[ApiResponse, Exception, Callable[..., Any]]


class FakeLettaApi:
    """
    Records every call and answers from a (method, path) route table.

    A route is an ``ApiResponse``, an exception to raise, or a callable
    taking the request kwargs and returning either. Unrouted calls get a
    404 like the real server.
    """

    api_base = "http://letta.test/v1"

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.closed = False

    def on(self, method: str, path: str, data: Any = None, status: int = 200) -> None:
        if status >= 400:
            self.routes[(method, path)] = api_error(status, data, method, path)
        else:
            self.routes[(method, path)] = ApiResponse(data=data, status=status)

    def fail(self, method: str, path: str, status: int, data: Any = None) -> None:
        self.on(method, path, data, status)

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [kwargs for m, p, kwargs in self.calls if m == method and p == path]

    async def request(self, method: str, path: str, **kwargs: Any) -> ApiResponse:
        self.calls.append((method, path, kwargs))
        route = self.routes.get((method, path))
        if route is None:
            raise api_error(404, {"detail": "Not Found"}, method, path)
        if callable(route) and not isinstance(route, (ApiResponse, Exception)):
            route = route(**kwargs)
        if isinstance(route, Exception):
            raise route
        return route

    async def get(self, path: str, params: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("GET", path, params=params, **kwargs)

    async def post(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("POST", path, json=json, **kwargs)

    async def patch(self, path: str, json: Any = None, **kwargs: Any) -> ApiResponse:
        return await self.request("PATCH", path, json=json, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> ApiResponse:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        self.closed = True


def api_error(status: int, data: Any = None, method: str = "GET", path: str = "/") -> LettaAPIError:
    return LettaAPIError(
        f"Letta API returned {status} for {method} {path}",
        status=status,
        data=data,
        method=method,
        path=path,
    )


def payload(result: Dict[str, Any]) -> Any:
    """Decode the JSON text block of a tool result."""
    return json.loads(result["content"][0]["text"])


@pytest.fixture
def config():
    return LettaMCPConfig(letta={"base_url": "http://letta.test", "password": "pw"})


@pytest.fixture
def api():
    return FakeLettaApi()


@pytest.fixture
def server(config, api):
    app = LettaServer(config, api=api)
    app.register_defaults()
    return app
