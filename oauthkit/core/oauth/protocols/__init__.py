"""
OAuth2 protocol steps and adapters.

Implemented protocols:
- OAuth2Adapter: standard OAuth2 (generic steps, no hooks)
- FeishuAdapter: app token before user token
- WechatAdapter: GET token, profile keyed by openid from the token response

Usage:
    from oauthkit.core.oauth.protocols import exchange_code, resolve_user

    token = await exchange_code(config, code, state)
    user = await resolve_user(config, token, code)
"""

from oauthkit.core.oauth.protocols.base import ProtocolAdapter, Token, User, parse_response_body
from oauthkit.core.oauth.protocols.feishu import FeishuAdapter
from oauthkit.core.oauth.protocols.oauth2 import OAuth2Adapter, exchange_code, map_user, resolve_user
from oauthkit.core.oauth.protocols.wechat import WechatAdapter

__all__ = [
    "ProtocolAdapter",
    "Token",
    "User",
    "parse_response_body",
    "OAuth2Adapter",
    "FeishuAdapter",
    "WechatAdapter",
    "exchange_code",
    "resolve_user",
    "map_user",
]
