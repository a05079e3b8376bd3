"""
Shared fixtures.

Provider endpoints are served by ``FakeProvider``, an ``httpx.MockTransport``
that answers from a route table and records every request it sees.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest

from oauthkit.core.oauth.config import OAuth2Config

AUTHORIZE_URL = "https://login.example.com/authorize"
TOKEN_URL = "https://login.example.com/token"
USERINFO_URL = "https://login.example.com/user"
LOGOUT_URL = "https://login.example.com/logout"
REDIRECT_URI = "https://app.example.com/login/callback"

Responder = Callable[[httpx.Request], httpx.Response]


class FakeProvider:
    """Route table keyed by (method, url without query)."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def route(self, method: str, url: str, *, json: Any = None, status_code: int = 200, **kwargs: Any) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            if json is not None:
                return httpx.Response(status_code, json=json)
            return httpx.Response(status_code, **kwargs)

        self.routes[(method.upper(), url)] = responder

    def route_with(self, method: str, url: str, responder: Responder) -> None:
        self.routes[(method.upper(), url)] = responder

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, _base_url(request))
        responder = self.routes.get(key)
        if responder is None:
            return httpx.Response(404, json={"error": "not_found", "error_description": f"no route for {key}"})
        return responder(request)

    def requests_to(self, url: str) -> List[httpx.Request]:
        return [r for r in self.requests if _base_url(r) == url]


def _base_url(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_config() -> Callable[..., OAuth2Config]:
    """Build a complete OAuth2Config; keyword arguments override fields."""

    def factory(**overrides: Any) -> OAuth2Config:
        values: Dict[str, Any] = {
            "name": "example",
            "authorize_url": AUTHORIZE_URL,
            "token_url": TOKEN_URL,
            "userinfo_url": USERINFO_URL,
            "redirect_uri": REDIRECT_URI,
            "client_id": "client-123",
            "client_secret": "secret-456",
        }
        values.update(overrides)
        return OAuth2Config(**values)

    return factory
