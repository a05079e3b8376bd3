"""
OAuth2 engine internals.

Module layout:
- extract.py: dotted-path field extraction over JSON responses
- config.py: provider config, defaults/validation, URL builders, YAML loader
- registry.py: thread-safe provider registry
- factory.py: protocol adapter factory
- protocols/: protocol steps and adapters
  - base.py: Token, User, response parsing, adapter base class
  - oauth2.py: generic code exchange and user resolution
  - feishu.py: app token before user token
  - wechat.py: openid-keyed profile lookup
"""

from oauthkit.core.oauth.config import (
    PROVIDER_TEMPLATES,
    OAuth2Config,
    OAuthConfigLoader,
    apply_default_config,
    validate_config,
)
from oauthkit.core.oauth.factory import (
    get_protocol_adapter,
    list_supported_protocols,
    register_protocol_adapter,
)
from oauthkit.core.oauth.protocols import Token, User, exchange_code, resolve_user
from oauthkit.core.oauth.registry import ProviderRegistry

__all__ = [
    "PROVIDER_TEMPLATES",
    "OAuth2Config",
    "OAuthConfigLoader",
    "apply_default_config",
    "validate_config",
    "ProviderRegistry",
    "get_protocol_adapter",
    "list_supported_protocols",
    "register_protocol_adapter",
    "Token",
    "User",
    "exchange_code",
    "resolve_user",
]
