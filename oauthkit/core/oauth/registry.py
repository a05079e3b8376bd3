"""
Provider registry.

Maps provider names to configurations for callers that pick a provider at
request time (e.g. from a URL path segment). Build one registry at startup,
populate it, and pass it to whatever needs lookups.
"""

import threading
from typing import TYPE_CHECKING, Dict, List, Optional

import httpx
from loguru import logger

from oauthkit.common.exceptions import (
    EmptyProviderNameError,
    ProviderAlreadyRegisteredError,
    ProviderNotFoundError,
)
from oauthkit.core.oauth.config import OAuth2Config

if TYPE_CHECKING:
    from oauthkit.services.oauth_service import OAuth2Client

LOG_PREFIX = "[OAuthRegistry]"


class ProviderRegistry:
    """Thread-safe name -> OAuth2Config table."""

    def __init__(self) -> None:
        self._providers: Dict[str, OAuth2Config] = {}
        self._lock = threading.RLock()

    def register(self, name: str, config: OAuth2Config) -> None:
        """
        Register a provider.

        Raises:
            EmptyProviderNameError: name is empty
            ProviderAlreadyRegisteredError: name is taken
        """
        if not name:
            raise EmptyProviderNameError()

        with self._lock:
            if name in self._providers:
                raise ProviderAlreadyRegisteredError(name)

            if not config.name:
                config.name = name

            self._providers[name] = config

        logger.info(f"{LOG_PREFIX} Registered provider: {name}")

    def get(self, name: str) -> OAuth2Config:
        """
        Look up a provider.

        Raises:
            EmptyProviderNameError: name is empty
            ProviderNotFoundError: nothing registered under name
        """
        if not name:
            raise EmptyProviderNameError()

        with self._lock:
            config = self._providers.get(name)

        if config is None:
            raise ProviderNotFoundError(name)
        return config

    def client(self, name: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> "OAuth2Client":
        """Build a client engine for the named provider."""
        from oauthkit.services.oauth_service import OAuth2Client

        return OAuth2Client(self.get(name), transport=transport)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._providers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._providers

    def __len__(self) -> int:
        with self._lock:
            return len(self._providers)
