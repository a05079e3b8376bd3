"""
Shared pieces of the OAuth2 protocol steps.

- ``Token`` / ``User``: canonical results of a successful callback
- ``parse_response_body``: turns whatever a provider call returned into a
  JSON value
- ``check_error_envelope``: the ``{"code": ..., "message": ...}`` error
  envelope several providers wrap their responses in
- ``ProtocolAdapter``: base class for providers that need override hooks
"""

import inspect
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Tuple, Type
from urllib.parse import parse_qsl

import httpx

from oauthkit.common.exceptions import CodeExpiredError, ProviderResponseError
from oauthkit.core.oauth.extract import get_int, get_string
from oauthkit.core.settings import settings

if TYPE_CHECKING:
    from oauthkit.core.oauth.config import OAuth2Config

LOG_PREFIX = "[OAuthProtocol]"


@dataclass(frozen=True)
class Token:
    """Token obtained from the provider in exchange for the authorization code."""

    access_token: str
    refresh_token: str = ""
    expires_in: int = 0
    token_type: str = ""
    # Parsed token response, for provider-specific follow-up calls
    raw: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "token_type": self.token_type,
        }


@dataclass(frozen=True)
class User:
    """
    Unified user record.

    Built from the profile response through the provider's user mapping.
    Missing string fields are empty, missing sequences are empty lists.
    """

    id: str = ""
    email: str = ""
    username: str = ""
    nickname: str = ""
    avatar: str = ""
    homepage: str = ""
    groups: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)
    raw: Any = field(default=None, repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "nickname": self.nickname,
            "avatar": self.avatar,
            "homepage": self.homepage,
            "groups": list(self.groups),
            "permissions": list(self.permissions),
        }


def parse_response_body(raw: Any) -> Tuple[Any, Optional[int]]:
    """
    Parse a provider response into a JSON value.

    Accepts an ``httpx.Response``, an already parsed mapping or list, or a
    JSON ``str``/``bytes`` body.

    Returns:
        (body, http_status); http_status is None unless raw is an httpx.Response

    Raises:
        ValueError: Body is not valid JSON, or raw has an unsupported type
    """
    if isinstance(raw, httpx.Response):
        content_type = raw.headers.get("content-type", "")
        if not raw.content:
            return {}, raw.status_code
        if "application/x-www-form-urlencoded" in content_type:
            return dict(parse_qsl(raw.text)), raw.status_code
        return json.loads(raw.content), raw.status_code

    if isinstance(raw, Mapping):
        return dict(raw), None
    if isinstance(raw, list):
        return raw, None
    if isinstance(raw, (str, bytes, bytearray)):
        if not raw.strip():
            return {}, None
        return json.loads(raw), None

    raise ValueError(f"unsupported provider response type: {type(raw).__name__}")


def check_error_envelope(
    body: Any,
    error_cls: Type[ProviderResponseError],
    *,
    http_status: Optional[int] = None,
    detect_expired: bool = False,
) -> None:
    """
    Raise when the body carries a provider error envelope with ``code != 0``.

    Args:
        body: Parsed response body
        error_cls: Error kind to raise
        http_status: HTTP status of the response, if known
        detect_expired: Map the configured expired-code value to CodeExpiredError
    """
    error_code = get_int(body, "code")
    if error_code == 0:
        return

    message = get_string(body, "message") or f"provider error code {error_code}"
    if detect_expired and error_code == settings.oauth_code_expired_error_code:
        raise CodeExpiredError(
            f"code is expired: {message}",
            provider_code=error_code,
            http_status=http_status,
        )
    raise error_cls(message, provider_code=error_code, http_status=http_status)


async def call_hook(hook: Callable[..., Any], *args: Any) -> Any:
    """Invoke an override hook that may be sync or async."""
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def http_client(config: "OAuth2Config") -> httpx.AsyncClient:
    """HTTP client for provider calls, on the transport the config plugs in."""
    return httpx.AsyncClient(transport=config.transport, timeout=settings.oauth_http_timeout)


class ProtocolAdapter(ABC):
    """
    Base class for provider protocol adapters.

    An adapter fills in the field mappings a provider needs and installs the
    override hooks for the protocol steps it cannot express as plain
    template substitution. Mapping entries already set on the config win.
    """

    # Protocol identifier (override in subclasses)
    protocol: str = "base"

    # Default attribute values (endpoint URLs, scope) for ones left empty on the config
    endpoints: Dict[str, str] = {}
    param_names: Dict[str, str] = {}
    token_mapping: Dict[str, str] = {}
    user_mapping: Dict[str, str] = {}

    def configure(self, config: "OAuth2Config") -> "OAuth2Config":
        """Apply the adapter's endpoints, mappings and hooks to ``config`` in place."""
        for attr, url in self.endpoints.items():
            if not getattr(config, attr):
                setattr(config, attr, url)
        _fill_missing(config.param_names, self.param_names)
        _fill_missing(config.token_mapping, self.token_mapping)
        _fill_missing(config.user_mapping, self.user_mapping)
        config.protocol = self.protocol
        self.install_hooks(config)
        return config

    @abstractmethod
    def install_hooks(self, config: "OAuth2Config") -> None:
        """Set the override hooks this protocol needs."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} protocol={self.protocol}>"


def _fill_missing(target: Dict[str, str], defaults: Dict[str, str]) -> None:
    for key, value in defaults.items():
        if not target.get(key):
            target[key] = value
