"""
Unified exception hierarchy.

- **AppException**: base class built on FastAPI's ``HTTPException`` so web
  callers can render any engine error directly. ``status_code`` (HTTP) and
  ``code`` (business/error code) are kept separate and ``data`` carries extra
  details.
- **OAuthError**: base for every failure raised by the OAuth2 engine. Each
  error kind from the login protocol has its own subclass so callers can tell
  a configuration bug from a provider rejection or a recoverable retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from fastapi import HTTPException, status

if TYPE_CHECKING:
    from oauthkit.core.oauth.protocols.base import Token


class AppException(HTTPException):
    """Application base exception."""

    code: int
    data: Any

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        message: str = "Internal Server Error",
        *,
        code: int | None = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = status_code if code is None else code
        self.data = data

    @property
    def message(self) -> str:
        return str(self.detail)

    def __str__(self) -> str:
        return self.message


# ==================== OAuth2 engine errors ====================


class OAuthError(AppException):
    """Base class for OAuth2 engine errors."""

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = 2000

    def __init__(self, message: str, *, code: int | None = None, data: Any = None):
        super().__init__(
            status_code=self.default_status,
            message=message,
            code=self.default_code if code is None else code,
            data=data,
        )


class ConfigInvalidError(OAuthError):
    """Provider configuration is unusable (fatal, not retryable)."""

    default_code = 2001


class MissingRequiredFieldError(ConfigInvalidError):
    """A required configuration attribute is empty."""

    def __init__(self, field: str):
        super().__init__(f"oauth2: config {field} is empty", data={"field": field})
        self.field = field


class InvalidCallbackError(OAuthError):
    """Callback invoked without code or state."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_code = 2002

    def __init__(self, message: str = "invalid oauth2 login callback, code or state are required"):
        super().__init__(message)


class ProviderResponseError(OAuthError):
    """Provider answered with an error (envelope, RFC 6749 error or HTTP status)."""

    def __init__(
        self,
        message: str,
        *,
        provider_code: int | None = None,
        http_status: int | None = None,
    ):
        super().__init__(
            message,
            data={"provider_code": provider_code, "http_status": http_status},
        )
        self.provider_code = provider_code
        self.http_status = http_status


class TokenExchangeError(ProviderResponseError):
    """Provider rejected the authorization code, or the token request failed."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_code = 2003


class CodeExpiredError(TokenExchangeError):
    """Authorization code expired; the user should restart the login."""

    default_code = 2004


class UserFetchError(ProviderResponseError):
    """Profile lookup failed after a token was obtained."""

    default_status = status.HTTP_502_BAD_GATEWAY
    default_code = 2005

    # Set by the client engine so callers can retry just the profile step
    token: Optional["Token"] = None


class EmptyProviderNameError(OAuthError):
    """Registry called with an empty provider name."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_code = 2006

    def __init__(self):
        super().__init__("oauth2: provider is empty")


class ProviderNotFoundError(OAuthError):
    """No provider registered under the given name."""

    default_status = status.HTTP_404_NOT_FOUND
    default_code = 2007

    def __init__(self, name: str):
        super().__init__(f"oauth2: provider({name}) not registered", data={"provider": name})
        self.provider = name


class ProviderAlreadyRegisteredError(OAuthError):
    """A provider with the same name is already registered."""

    default_status = status.HTTP_409_CONFLICT
    default_code = 2008

    def __init__(self, name: str):
        super().__init__(f"oauth2: provider({name}) already registered", data={"provider": name})
        self.provider = name
