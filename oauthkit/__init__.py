"""
oauthkit - generic OAuth2 authorization code client.

One engine drives authorize -> code exchange -> user profile against many
identity providers; provider differences live in configuration (URLs,
parameter names, dotted field paths) and optional override hooks.
"""

from oauthkit.common.exceptions import (
    CodeExpiredError,
    ConfigInvalidError,
    EmptyProviderNameError,
    InvalidCallbackError,
    MissingRequiredFieldError,
    OAuthError,
    ProviderAlreadyRegisteredError,
    ProviderNotFoundError,
    TokenExchangeError,
    UserFetchError,
)
from oauthkit.core.oauth import (
    OAuth2Config,
    OAuthConfigLoader,
    ProviderRegistry,
    Token,
    User,
    apply_default_config,
    validate_config,
)
from oauthkit.services.oauth_service import OAuth2Client

__version__ = "0.1.0"

__all__ = [
    "OAuth2Client",
    "OAuth2Config",
    "OAuthConfigLoader",
    "ProviderRegistry",
    "Token",
    "User",
    "apply_default_config",
    "validate_config",
    "OAuthError",
    "ConfigInvalidError",
    "MissingRequiredFieldError",
    "InvalidCallbackError",
    "TokenExchangeError",
    "CodeExpiredError",
    "UserFetchError",
    "EmptyProviderNameError",
    "ProviderNotFoundError",
    "ProviderAlreadyRegisteredError",
]
