"""
OAuth2 client engine - drives the login protocol for one provider.

Steps:
- authorize: build the provider login URL the user is redirected to
- callback: exchange the returned code for a token, then fetch the user
- logout / register: build the provider logout and sign-up URLs

The engine keeps no per-login state; ``state`` round-trips through the
provider and the caller owns persistence of the resulting token and user.
"""

import dataclasses
from typing import Any, Awaitable, Callable, Optional, Tuple, Union

import httpx
from loguru import logger

from oauthkit.common.exceptions import InvalidCallbackError, OAuthError, UserFetchError
from oauthkit.core.oauth.config import OAuth2Config, apply_default_config, validate_config
from oauthkit.core.oauth.protocols import Token, User, exchange_code, resolve_user
from oauthkit.core.oauth.protocols.base import call_hook

LOG_PREFIX = "[OAuthService]"

URLHandler = Callable[[str], Any]
CallbackHandler = Callable[
    [Optional[User], Optional[Token], Optional[OAuthError]],
    Union[None, Awaitable[None]],
]


class OAuth2Client:
    """OAuth2 authorization code client for a single provider."""

    def __init__(
        self,
        config: OAuth2Config,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Copy, default and validate the provider config.

        Args:
            config: Provider config; the caller's instance is not modified
            transport: Overrides config.transport for this client

        Raises:
            ConfigInvalidError: A required attribute is empty
        """
        config = dataclasses.replace(
            config,
            param_names=dict(config.param_names),
            token_mapping=dict(config.token_mapping),
            user_mapping=dict(config.user_mapping),
            userinfo_headers=dict(config.userinfo_headers),
        )
        if transport is not None:
            config.transport = transport

        apply_default_config(config)
        validate_config(config)
        self._config = config
        self._log = logger.bind(provider=config.name or "-")

    @property
    def config(self) -> OAuth2Config:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    # ==================== Authorization ====================

    def get_login_url(self, state: str = "") -> str:
        return self._config.build_login_url(state)

    def authorize(self, state: str, handler: URLHandler) -> Any:
        """First step: hand the provider login URL to ``handler``."""
        return handler(self.get_login_url(state))

    # ==================== Callback ====================

    async def login(self, code: str, state: str) -> Tuple[User, Token]:
        """
        Exchange the code and resolve the user.

        Returns:
            (user, token)

        Raises:
            InvalidCallbackError: code or state is empty
            TokenExchangeError: Code exchange failed (CodeExpiredError when expired)
            UserFetchError: Profile lookup failed; ``error.token`` holds the token
        """
        if not code or not state:
            raise InvalidCallbackError()

        # Protocol step logs carry the provider name too
        with logger.contextualize(provider=self.name or "-"):
            token = await exchange_code(self._config, code, state)

            try:
                user = await resolve_user(self._config, token, code)
            except UserFetchError as e:
                e.token = token
                raise

        self._log.info(f"{LOG_PREFIX} Login completed for {self.name}: user={user.id}")
        return user, token

    async def callback(self, code: str, state: str, handler: CallbackHandler) -> None:
        """
        Second step: the provider redirected back with ``code`` and ``state``.

        ``handler(user, token, error)`` is called exactly once:
        - success: (user, token, None)
        - token exchange failed: (None, None, error)
        - user lookup failed: (None, token, error)
        """
        try:
            user, token = await self.login(code, state)
        except UserFetchError as e:
            self._log.warning(f"{LOG_PREFIX} Callback for {self.name} failed after token exchange: {e}")
            await call_hook(handler, None, e.token, e)
            return
        except OAuthError as e:
            self._log.warning(f"{LOG_PREFIX} Callback for {self.name} failed: {e}")
            await call_hook(handler, None, None, e)
            return

        await call_hook(handler, user, token, None)

    # ==================== Logout / register ====================

    def get_logout_url(self) -> str:
        return self._config.build_logout_url()

    def logout(self, handler: URLHandler) -> Any:
        """Hand the provider logout URL to ``handler``; empty when unsupported."""
        return handler(self.get_logout_url())

    def get_register_url(self) -> str:
        return self._config.build_register_url()

    def register(self, handler: URLHandler) -> Any:
        """Hand the provider sign-up URL to ``handler``; empty when unsupported."""
        return handler(self.get_register_url())

    def __repr__(self) -> str:
        return f"<OAuth2Client name={self.name!r} protocol={self._config.protocol}>"
