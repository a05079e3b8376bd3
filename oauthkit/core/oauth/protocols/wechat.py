"""
WeChat protocol adapter.

WeChat deviates from standard OAuth2:
- the token is requested with GET and query params (appid/secret)
- the profile lookup needs the ``openid`` that only the token response carries
- errors come as ``{"errcode": ..., "errmsg": ...}``
"""

from typing import TYPE_CHECKING, Any, Dict, Type

from loguru import logger

from oauthkit.common.exceptions import ProviderResponseError, TokenExchangeError, UserFetchError
from oauthkit.core.oauth.extract import get_int, get_string
from oauthkit.core.oauth.protocols.base import ProtocolAdapter, Token, http_client

if TYPE_CHECKING:
    from oauthkit.core.oauth.config import OAuth2Config

LOG_PREFIX = "[WechatAdapter]"


class WechatAdapter(ProtocolAdapter):
    """WeChat website-login adapter."""

    protocol = "wechat"

    endpoints = {
        "authorize_url": "https://open.weixin.qq.com/connect/qrconnect",
        "token_url": "https://api.weixin.qq.com/sns/oauth2/access_token",
        "userinfo_url": "https://api.weixin.qq.com/sns/userinfo",
        "scope": "snsapi_login",
    }
    param_names = {
        "client_id": "appid",
    }
    user_mapping = {
        # unionid is shared across apps of one account; openid is per app
        "id": "openid",
        "nickname": "nickname",
        "avatar": "headimgurl",
    }

    def install_hooks(self, config: "OAuth2Config") -> None:
        config.get_access_token_response = self.get_access_token_response
        config.get_user_response = self.get_user_response

    async def get_access_token_response(self, config: "OAuth2Config", code: str, state: str) -> Dict[str, Any]:
        async with http_client(config) as client:
            response = await client.get(
                config.token_url,
                params={
                    "appid": config.client_id,
                    "secret": config.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                },
            )
        return _checked(response.json(), TokenExchangeError, response.status_code)

    async def get_user_response(self, config: "OAuth2Config", token: Token, code: str) -> Dict[str, Any]:
        openid = get_string(token.raw, "openid")
        if not openid:
            raise UserFetchError("wechat: token response has no openid")

        async with http_client(config) as client:
            response = await client.get(
                config.userinfo_url,
                params={"access_token": token.access_token, "openid": openid},
            )
        return _checked(response.json(), UserFetchError, response.status_code)


def _checked(body: Dict[str, Any], error_cls: Type[ProviderResponseError], http_status: int) -> Dict[str, Any]:
    errcode = get_int(body, "errcode")
    if errcode != 0:
        message = get_string(body, "errmsg") or f"wechat error code {errcode}"
        logger.warning(f"{LOG_PREFIX} {message} (errcode={errcode})")
        raise error_cls(message, provider_code=errcode, http_status=http_status)
    return body
