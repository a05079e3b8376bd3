"""
Protocol adapter factory.

Return an adapter instance by protocol name.

Usage:
    from oauthkit.core.oauth.factory import get_protocol_adapter

    adapter = get_protocol_adapter("feishu")
    config = adapter.configure(OAuth2Config(client_id=..., client_secret=..., redirect_uri=...))
"""

import threading
from typing import Dict, Type

from loguru import logger

from oauthkit.core.oauth.protocols.base import ProtocolAdapter
from oauthkit.core.oauth.protocols.feishu import FeishuAdapter
from oauthkit.core.oauth.protocols.oauth2 import OAuth2Adapter
from oauthkit.core.oauth.protocols.wechat import WechatAdapter

LOG_PREFIX = "[OAuthFactory]"

# Protocol adapter registry
# Register new protocols here
_PROTOCOL_ADAPTERS: Dict[str, Type[ProtocolAdapter]] = {
    "oauth2": OAuth2Adapter,
    "feishu": FeishuAdapter,
    "wechat": WechatAdapter,
}

# Adapter instance cache
_adapter_instances: Dict[str, ProtocolAdapter] = {}
_lock = threading.Lock()


def get_protocol_adapter(protocol: str) -> ProtocolAdapter:
    """
    Get protocol adapter instance.

    Args:
        protocol: Protocol name (e.g. "oauth2", "feishu")

    Returns:
        ProtocolAdapter: Adapter instance; unknown names fall back to oauth2
    """
    with _lock:
        if protocol in _adapter_instances:
            return _adapter_instances[protocol]

        adapter_class = _PROTOCOL_ADAPTERS.get(protocol)
        if adapter_class is None:
            logger.warning(f"{LOG_PREFIX} Unknown protocol '{protocol}', falling back to oauth2")
            adapter_class = OAuth2Adapter

        adapter = adapter_class()
        _adapter_instances[protocol] = adapter

    logger.debug(f"{LOG_PREFIX} Created adapter for protocol: {protocol}")
    return adapter


def register_protocol_adapter(protocol: str, adapter_class: Type[ProtocolAdapter]) -> None:
    """
    Register a new protocol adapter.

    Args:
        protocol: Protocol name
        adapter_class: Adapter class

    Example:
        register_protocol_adapter("dingtalk", DingtalkAdapter)
    """
    with _lock:
        _PROTOCOL_ADAPTERS[protocol] = adapter_class
        # Recreate on next request
        _adapter_instances.pop(protocol, None)
    logger.info(f"{LOG_PREFIX} Registered protocol adapter: {protocol}")


def list_supported_protocols() -> list[str]:
    """List all supported protocols."""
    return list(_PROTOCOL_ADAPTERS.keys())
