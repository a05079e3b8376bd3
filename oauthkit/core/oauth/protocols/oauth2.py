"""
Standard OAuth2 protocol steps.

Implements the authorization code flow after the redirect:
1. Exchange code for access_token (``exchange_code``)
2. Fetch userinfo with access_token (``resolve_user``)

Either step can be replaced per provider through the config's override
hooks; the response is inspected and mapped the same way in both cases.
"""

import base64
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx
from loguru import logger

from oauthkit.common.exceptions import OAuthError, TokenExchangeError, UserFetchError
from oauthkit.core.oauth.extract import get_int, get_string, get_strings
from oauthkit.core.oauth.protocols.base import (
    ProtocolAdapter,
    Token,
    User,
    call_hook,
    check_error_envelope,
    http_client,
    parse_response_body,
)

if TYPE_CHECKING:
    from oauthkit.core.oauth.config import OAuth2Config

LOG_PREFIX = "[OAuth2Handler]"


class OAuth2Adapter(ProtocolAdapter):
    """Standard OAuth2: every step is generic, no hooks."""

    protocol = "oauth2"

    def install_hooks(self, config: "OAuth2Config") -> None:
        return None


# ==================== Token exchange ====================


async def exchange_code(config: "OAuth2Config", code: str, state: str) -> Token:
    """
    Exchange the authorization code for a token.

    Args:
        config: Provider config (defaults applied)
        code: Authorization code
        state: State echoed back by the provider

    Returns:
        Token with the raw response body attached

    Raises:
        CodeExpiredError: Provider reports the code as expired
        TokenExchangeError: Request failed or provider rejected the code
    """
    try:
        if config.get_access_token_response is not None:
            raw = await call_hook(config.get_access_token_response, config, code, state)
        else:
            raw = await _request_token(config, code, state)
    except OAuthError:
        raise
    except Exception as e:
        logger.error(f"{LOG_PREFIX} Token request to {config.name} failed: {e}")
        raise TokenExchangeError(f"get access token error by code: {e}") from e

    try:
        body, http_status = parse_response_body(raw)
    except ValueError as e:
        logger.error(f"{LOG_PREFIX} Unreadable token response from {config.name}: {e}")
        raise TokenExchangeError(f"invalid token response: {e}") from e

    logger.debug(f"{LOG_PREFIX} Token response from {config.name}: {body}")

    check_error_envelope(body, TokenExchangeError, http_status=http_status, detect_expired=True)

    # RFC 6749 section 5.2 error response
    error = get_string(body, "error")
    if error:
        description = get_string(body, "error_description") or error
        logger.warning(f"{LOG_PREFIX} Token exchange rejected by {config.name}: {error}")
        raise TokenExchangeError(description, http_status=http_status)

    if http_status is not None and http_status >= 400:
        logger.warning(f"{LOG_PREFIX} Token exchange failed for {config.name}: HTTP {http_status}")
        raise TokenExchangeError(f"token exchange failed: HTTP {http_status}", http_status=http_status)

    mapping = config.token_mapping
    token = Token(
        access_token=get_string(body, mapping["access_token"]),
        refresh_token=get_string(body, mapping["refresh_token"]),
        expires_in=get_int(body, mapping["expires_in"]),
        token_type=get_string(body, mapping["token_type"]),
        raw=body,
    )
    if not token.access_token:
        logger.warning(f"{LOG_PREFIX} No access token at '{mapping['access_token']}' for {config.name}")

    logger.info(f"{LOG_PREFIX} Token exchange successful for {config.name}")
    return token


async def _request_token(config: "OAuth2Config", code: str, state: str) -> httpx.Response:
    data: Dict[str, str] = {
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "grant_type": "authorization_code",
        "redirect_uri": config.redirect_uri,
        "code": code,
        "state": state,
    }
    headers: Dict[str, str] = {
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }

    if config.token_endpoint_auth_method == "client_secret_basic":
        # Credentials in the Authorization header instead of the body
        del data["client_id"]
        del data["client_secret"]
        credentials = base64.b64encode(f"{config.client_id}:{config.client_secret}".encode()).decode()
        headers["Authorization"] = f"Basic {credentials}"

    async with http_client(config) as client:
        return await client.post(config.token_url, data=data, headers=headers)


# ==================== User resolution ====================


async def resolve_user(config: "OAuth2Config", token: Token, code: str) -> User:
    """
    Fetch the profile with the token and map it onto a User.

    Args:
        config: Provider config (defaults applied)
        token: Token from exchange_code
        code: Original authorization code, for hooks keyed by it

    Raises:
        UserFetchError: Request failed or provider returned an error
    """
    try:
        if config.get_user_response is not None:
            raw = await call_hook(config.get_user_response, config, token, code)
        else:
            raw = await _request_userinfo(config, token)
    except OAuthError:
        raise
    except Exception as e:
        logger.error(f"{LOG_PREFIX} Userinfo request to {config.name} failed: {e}")
        raise UserFetchError(f"get user info error: {e}") from e

    try:
        body, http_status = parse_response_body(raw)
    except ValueError as e:
        logger.error(f"{LOG_PREFIX} Unreadable userinfo response from {config.name}: {e}")
        raise UserFetchError(f"invalid user info response: {e}") from e

    logger.debug(f"{LOG_PREFIX} Userinfo response from {config.name}: {body}")

    check_error_envelope(body, UserFetchError, http_status=http_status)

    if http_status is not None and http_status >= 400:
        logger.warning(f"{LOG_PREFIX} Userinfo fetch failed for {config.name}: HTTP {http_status}")
        raise UserFetchError(f"failed to fetch userinfo: HTTP {http_status}", http_status=http_status)

    user = map_user(body, config.user_mapping)
    logger.info(f"{LOG_PREFIX} Userinfo fetched for {config.name}")
    return user


async def _request_userinfo(config: "OAuth2Config", token: Token) -> httpx.Response:
    headers = {
        "Authorization": f"Bearer {token.access_token}",
        "Accept": "application/json",
        **config.userinfo_headers,
    }
    async with http_client(config) as client:
        return await client.get(config.userinfo_url, headers=headers)


def map_user(body: Any, user_mapping: Optional[Dict[str, str]] = None) -> User:
    """Map a profile body onto a User via the configured field paths."""
    mapping = user_mapping or {}
    return User(
        id=get_string(body, mapping.get("id", "")),
        email=get_string(body, mapping.get("email", "")),
        username=get_string(body, mapping.get("username", "")),
        nickname=get_string(body, mapping.get("nickname", "")),
        avatar=get_string(body, mapping.get("avatar", "")),
        homepage=get_string(body, mapping.get("homepage", "")),
        permissions=get_strings(body, mapping.get("permissions", "")),
        groups=get_strings(body, mapping.get("groups", "")),
        raw=body,
    )
