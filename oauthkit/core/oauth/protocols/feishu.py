"""
Feishu (Lark) protocol adapter.

Feishu uses a two-tier credential model. Flow:
1. Fetch an app access token with app_id + app_secret (server to server)
2. Exchange the user's code, authenticating with the app token as bearer
3. Fetch user info with the user access token (generic step)

All responses are wrapped in a ``{"code": 0, "data": {...}}`` envelope.
"""

from typing import TYPE_CHECKING
from urllib.parse import quote_plus

import httpx
from loguru import logger

from oauthkit.common.exceptions import TokenExchangeError
from oauthkit.core.oauth.extract import get_string
from oauthkit.core.oauth.protocols.base import ProtocolAdapter, check_error_envelope, http_client

if TYPE_CHECKING:
    from oauthkit.core.oauth.config import OAuth2Config

LOG_PREFIX = "[FeishuAdapter]"

APP_ACCESS_TOKEN_URL = "https://open.feishu.cn/open-apis/auth/v3/app_access_token/internal"
SIGNUP_URL = "https://www.feishu.cn/accounts/page/ug_register"


class FeishuAdapter(ProtocolAdapter):
    """Feishu protocol adapter."""

    protocol = "feishu"

    endpoints = {
        "authorize_url": "https://open.feishu.cn/open-apis/authen/v1/index",
        "token_url": "https://open.feishu.cn/open-apis/authen/v1/access_token",
        "userinfo_url": "https://open.feishu.cn/open-apis/authen/v1/user_info",
        "logout_url": "https://open.feishu.cn/open-apis/authen/v1/logout",
        "scope": "user:email",
    }
    param_names = {
        "client_id": "app_id",
        "client_secret": "app_secret",
    }
    token_mapping = {
        "access_token": "data.access_token",
        "refresh_token": "data.refresh_token",
        "expires_in": "data.expires_in",
        "token_type": "data.token_type",
    }
    user_mapping = {
        "id": "data.union_id",
        "email": "data.enterprise_email",
        "username": "data.user_id",
        "nickname": "data.name",
        "avatar": "data.avatar_url",
    }

    def install_hooks(self, config: "OAuth2Config") -> None:
        config.get_access_token_response = self.get_access_token_response
        config.get_register_url = self.get_register_url

    async def get_app_access_token(self, config: "OAuth2Config") -> str:
        """
        Fetch the app-level access token.

        Raises:
            TokenExchangeError: Feishu rejected the app credentials
        """
        async with http_client(config) as client:
            response = await client.post(
                config.extra.get("app_access_token_url", APP_ACCESS_TOKEN_URL),
                json={"app_id": config.client_id, "app_secret": config.client_secret},
            )

        body = response.json()
        check_error_envelope(body, TokenExchangeError, http_status=response.status_code)

        app_access_token = get_string(body, "app_access_token")
        if not app_access_token:
            logger.error(f"{LOG_PREFIX} No app_access_token in response: {response.status_code}")
            raise TokenExchangeError("feishu: empty app access token", http_status=response.status_code)
        return app_access_token

    async def get_access_token_response(self, config: "OAuth2Config", code: str, state: str) -> httpx.Response:
        """Exchange the user's code, authenticated with the app token."""
        app_access_token = await self.get_app_access_token(config)

        logger.debug(f"{LOG_PREFIX} Exchanging code with app token for {config.name}")
        async with http_client(config) as client:
            return await client.post(
                config.token_url,
                headers={
                    "Authorization": f"Bearer {app_access_token}",
                    "Content-Type": "application/json; charset=utf-8",
                },
                json={"grant_type": "authorization_code", "code": code},
            )

    def get_register_url(self, config: "OAuth2Config") -> str:
        """Sign-up page that returns to the login page afterwards."""
        return f"{SIGNUP_URL}?redirect_uri={quote_plus(config.build_login_url())}"
