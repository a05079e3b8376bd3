"""
OAuth2 provider configuration.

- ``OAuth2Config``: one provider's endpoints, credentials, parameter names,
  response field paths and optional override hooks
- ``apply_default_config`` / ``validate_config``: defaulting and validation
  run when a client is built
- ``OAuthConfigLoader``: loads providers from YAML with support for
  built-in templates (GitHub, Google, ...), env var expansion ``${VAR_NAME}``
  and protocol adapters (oauth2, feishu, wechat)
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Union
from urllib.parse import urlencode

import httpx
import yaml
from loguru import logger

from oauthkit.common.exceptions import MissingRequiredFieldError

if TYPE_CHECKING:
    from oauthkit.core.oauth.protocols.base import Token
    from oauthkit.core.oauth.registry import ProviderRegistry

LOG_PREFIX = "[OAuthConfig]"

DEFAULT_SCOPE = "openid"
DEFAULT_STATE = "anything"

# Names used in the authorize request
DEFAULT_PARAM_NAMES: Dict[str, str] = {
    "client_id": "client_id",
    "client_secret": "client_secret",
    "redirect_uri": "redirect_uri",
    "response_type": "response_type",
    "scope": "scope",
    "state": "state",
}

# Field paths in the token response
DEFAULT_TOKEN_MAPPING: Dict[str, str] = {
    "access_token": "access_token",
    "refresh_token": "refresh_token",
    "expires_in": "expires_in",
    "token_type": "token_type",
}

# Field paths in the profile response
DEFAULT_USER_MAPPING: Dict[str, str] = {
    "id": "id",
    "email": "email",
    "username": "username",
    "nickname": "nickname",
    "avatar": "avatar",
    "homepage": "homepage",
    "permissions": "permissions",
    "groups": "groups",
}

# Checked in this order; the first empty one is reported
REQUIRED_FIELDS = (
    "authorize_url",
    "token_url",
    "userinfo_url",
    "redirect_uri",
    "client_id",
    "client_secret",
)

# Raw provider response: httpx.Response, parsed JSON, or a JSON str/bytes body
RawResponse = Any

LoginURLHook = Callable[["OAuth2Config", str], str]
URLHook = Callable[["OAuth2Config"], str]
TokenResponseHook = Callable[["OAuth2Config", str, str], Union[RawResponse, Awaitable[RawResponse]]]
UserResponseHook = Callable[["OAuth2Config", "Token", str], Union[RawResponse, Awaitable[RawResponse]]]


@dataclass
class OAuth2Config:
    """Single OAuth2 provider config."""

    name: str = ""
    authorize_url: str = ""
    token_url: str = ""
    userinfo_url: str = ""
    logout_url: str = ""
    register_url: str = ""
    # Callback URL = server URL + callback path, e.g. https://example.com/login/callback
    redirect_uri: str = ""
    scope: str = ""
    client_id: str = ""
    client_secret: str = ""

    param_names: Dict[str, str] = field(default_factory=dict)
    token_mapping: Dict[str, str] = field(default_factory=dict)
    user_mapping: Dict[str, str] = field(default_factory=dict)

    # Override hooks; None means the generic step runs
    get_login_url: Optional[LoginURLHook] = field(default=None, repr=False)
    get_logout_url: Optional[URLHook] = field(default=None, repr=False)
    get_register_url: Optional[URLHook] = field(default=None, repr=False)
    get_access_token_response: Optional[TokenResponseHook] = field(default=None, repr=False)
    get_user_response: Optional[UserResponseHook] = field(default=None, repr=False)

    # Extra config
    protocol: str = "oauth2"
    token_endpoint_auth_method: str = "client_secret_post"
    userinfo_headers: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)
    # Transport for provider calls (timeouts, proxies, test doubles)
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    def param(self, key: str) -> str:
        return self.param_names.get(key) or DEFAULT_PARAM_NAMES[key]

    def build_login_url(self, state: str = "") -> str:
        """
        Build the authorize (login) URL.

        Example: https://login.example.com/authorize?client_id=CLIENT_ID&redirect_uri=https%3A%2F%2Fabc.com%2Flogin%2Fcallback&response_type=code&scope=openid&state=anything
        """
        if not state:
            state = DEFAULT_STATE

        if self.get_login_url is not None:
            return self.get_login_url(self, state)

        params = {
            self.param("client_id"): self.client_id,
            self.param("redirect_uri"): self.redirect_uri,
            self.param("response_type"): "code",
            self.param("scope"): self.scope or DEFAULT_SCOPE,
            self.param("state"): state,
        }
        return _join_query(self.authorize_url, params)

    def build_logout_url(self) -> str:
        """
        Build the logout URL; empty when the provider has no logout endpoint.

        Example: https://login.example.com/logout?client_id=CLIENT_ID&redirect_uri=https%3A%2F%2Fabc.com%2Flogin%2Fcallback
        """
        if self.get_logout_url is not None:
            return self.get_logout_url(self)

        if not self.logout_url:
            return ""

        params = {
            self.param("client_id"): self.client_id,
            self.param("redirect_uri"): self.redirect_uri,
        }
        return _join_query(self.logout_url, params)

    def build_register_url(self) -> str:
        """Build the sign-up URL; empty when the provider has no register endpoint."""
        if self.get_register_url is not None:
            return self.get_register_url(self)

        if not self.register_url:
            return ""

        return _join_query(self.register_url, {self.param("client_id"): self.client_id})


def _join_query(url: str, params: Dict[str, str]) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"


def apply_default_config(config: OAuth2Config) -> OAuth2Config:
    """Fill empty parameter names and field paths with OAuth2 defaults (idempotent)."""
    for target, defaults in (
        (config.param_names, DEFAULT_PARAM_NAMES),
        (config.token_mapping, DEFAULT_TOKEN_MAPPING),
        (config.user_mapping, DEFAULT_USER_MAPPING),
    ):
        for key, value in defaults.items():
            if not target.get(key):
                target[key] = value
    return config


def validate_config(config: OAuth2Config) -> None:
    """
    Validate required attributes.

    Raises:
        MissingRequiredFieldError: naming the first empty required attribute
    """
    for name in REQUIRED_FIELDS:
        if not getattr(config, name):
            raise MissingRequiredFieldError(name)


# ==================== Built-in Provider Templates ====================
# Users only need client_id/client_secret/redirect_uri

PROVIDER_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "github": {
        "display_name": "GitHub",
        "authorize_url": "https://github.com/login/oauth/authorize",
        "token_url": "https://github.com/login/oauth/access_token",
        "userinfo_url": "https://api.github.com/user",
        "logout_url": "https://github.com/logout",
        "scope": "read:user user:email",
        "user_mapping": {
            "id": "id",
            "email": "email",
            "username": "login",
            "nickname": "name",
            "avatar": "avatar_url",
            "homepage": "html_url",
        },
        "userinfo_headers": {"Accept": "application/vnd.github+json"},
    },
    "google": {
        "display_name": "Google",
        "authorize_url": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_url": "https://oauth2.googleapis.com/token",
        "userinfo_url": "https://openidconnect.googleapis.com/v1/userinfo",
        "scope": "openid email profile",
        "user_mapping": {
            "id": "sub",
            "email": "email",
            "nickname": "name",
            "avatar": "picture",
        },
    },
    "microsoft": {
        # {tenant} placeholder; default "common" (all accounts)
        "display_name": "Microsoft",
        "authorize_url": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/authorize",
        "token_url": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token",
        "userinfo_url": "https://graph.microsoft.com/oidc/userinfo",
        "logout_url": "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/logout",
        "scope": "openid email profile",
        "user_mapping": {
            "id": "sub",
            "email": "email",
            "nickname": "name",
            "avatar": "picture",
        },
        "default_tenant": "common",
    },
    "gitlab": {
        "display_name": "GitLab",
        "authorize_url": "https://gitlab.com/oauth/authorize",
        "token_url": "https://gitlab.com/oauth/token",
        "userinfo_url": "https://gitlab.com/api/v4/user",
        "scope": "read_user",
        "user_mapping": {
            "id": "id",
            "email": "email",
            "username": "username",
            "nickname": "name",
            "avatar": "avatar_url",
            "homepage": "web_url",
        },
    },
}

_KNOWN_KEYS = {
    "enabled",
    "template",
    "display_name",
    "client_id",
    "client_secret",
    "redirect_uri",
    "authorize_url",
    "token_url",
    "userinfo_url",
    "logout_url",
    "register_url",
    "scope",
    "param_names",
    "token_mapping",
    "user_mapping",
    "token_endpoint_auth_method",
    "userinfo_headers",
    "tenant",
    "default_tenant",
    "protocol",
}


class OAuthConfigLoader:
    """Loads provider configs from a YAML file."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Config file path; settings.oauth_config_path when None
        """
        if config_path is None:
            from oauthkit.core.settings import settings

            config_path = settings.oauth_config_path

        self.config_path = Path(config_path) if config_path else None
        self._providers: Dict[str, OAuth2Config] = {}
        self._loaded: bool = False

    def load(self, force_reload: bool = False) -> None:
        """
        Load config file.

        Args:
            force_reload: Force reload
        """
        if self._loaded and not force_reload:
            return

        self._providers.clear()
        self._loaded = True

        if self.config_path is None or not self.config_path.exists():
            logger.warning(f"{LOG_PREFIX} Config file not found: {self.config_path}")
            return

        with open(self.config_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        if not raw:
            logger.warning(f"{LOG_PREFIX} Config file is empty: {self.config_path}")
            return

        providers = raw.get("providers") if isinstance(raw, dict) else None
        if not isinstance(providers, dict):
            logger.error(f"{LOG_PREFIX} Config file has no 'providers' mapping: {self.config_path}")
            return

        for name, config in providers.items():
            if not isinstance(config, dict):
                logger.error(f"{LOG_PREFIX} Provider '{name}' is not a mapping, skipping")
                continue
            if not config.get("enabled", False):
                logger.debug(f"{LOG_PREFIX} Provider '{name}' is disabled, skipping")
                continue

            try:
                self._providers[name] = self.parse_provider(name, config)
                logger.info(f"{LOG_PREFIX} Loaded provider: {name}")
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"{LOG_PREFIX} Failed to load provider '{name}': {e}")

        logger.info(f"{LOG_PREFIX} Loaded {len(self._providers)} OAuth providers")

    def parse_provider(self, name: str, config: Dict[str, Any]) -> OAuth2Config:
        """Build an OAuth2Config from one YAML provider entry."""
        from oauthkit.core.oauth.factory import get_protocol_adapter

        config = self._expand_env_vars(config)

        template_name = config.get("template")
        if template_name and template_name not in PROVIDER_TEMPLATES:
            raise ValueError(f"unknown template '{template_name}'")
        template = PROVIDER_TEMPLATES.get(template_name, {}) if template_name else {}

        # User config overrides template; mappings merge key by key
        merged = {**template, **config}
        for key in ("param_names", "token_mapping", "user_mapping", "userinfo_headers"):
            merged[key] = {**template.get(key, {}), **(config.get(key) or {})}

        tenant = merged.get("tenant", merged.get("default_tenant", "common"))

        def url(key: str) -> str:
            return str(merged.get(key) or "").replace("{tenant}", tenant)

        provider = OAuth2Config(
            name=merged.get("display_name", name),
            authorize_url=url("authorize_url"),
            token_url=url("token_url"),
            userinfo_url=url("userinfo_url"),
            logout_url=url("logout_url"),
            register_url=url("register_url"),
            redirect_uri=str(merged.get("redirect_uri") or ""),
            scope=str(merged.get("scope") or ""),
            client_id=str(merged.get("client_id") or "").strip(),
            client_secret=str(merged.get("client_secret") or "").strip(),
            param_names=merged["param_names"],
            token_mapping=merged["token_mapping"],
            user_mapping=merged["user_mapping"],
            token_endpoint_auth_method=merged.get("token_endpoint_auth_method", "client_secret_post"),
            userinfo_headers=merged["userinfo_headers"],
            extra={k: v for k, v in merged.items() if k not in _KNOWN_KEYS},
        )

        return get_protocol_adapter(merged.get("protocol", "oauth2")).configure(provider)

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively replace ${VAR_NAME} with env var values."""
        if isinstance(obj, str):
            return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
        elif isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(i) for i in obj]
        return obj

    def get_provider(self, name: str) -> Optional[OAuth2Config]:
        """Get provider config by name."""
        self.load()
        return self._providers.get(name)

    def list_providers(self) -> List[Dict[str, str]]:
        """List loaded providers without secrets."""
        self.load()
        return [
            {"id": name, "display_name": provider.name, "protocol": provider.protocol}
            for name, provider in self._providers.items()
        ]

    def populate(self, registry: "ProviderRegistry") -> int:
        """Register every loaded provider; returns the number registered."""
        self.load()
        for name, provider in self._providers.items():
            registry.register(name, provider)
        return len(self._providers)
