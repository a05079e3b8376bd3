"""Tests for the provider registry."""

import threading

import pytest

from oauthkit.common.exceptions import (
    EmptyProviderNameError,
    ProviderAlreadyRegisteredError,
    ProviderNotFoundError,
)
from oauthkit.core.oauth.config import OAuth2Config
from oauthkit.core.oauth.registry import ProviderRegistry
from oauthkit.services.oauth_service import OAuth2Client


class TestProviderRegistry:
    def test_register_and_get(self, make_config):
        registry = ProviderRegistry()
        config = make_config()
        registry.register("p", config)

        assert registry.get("p") is config
        assert "p" in registry
        assert len(registry) == 1
        assert registry.names() == ["p"]

    def test_duplicate_registration_fails(self, make_config):
        registry = ProviderRegistry()
        registry.register("p", make_config())
        with pytest.raises(ProviderAlreadyRegisteredError) as exc_info:
            registry.register("p", make_config(client_id="other"))
        assert exc_info.value.status_code == 409
        assert registry.get("p").client_id == "client-123"

    def test_missing_provider(self):
        with pytest.raises(ProviderNotFoundError) as exc_info:
            ProviderRegistry().get("missing")
        assert exc_info.value.provider == "missing"
        assert exc_info.value.status_code == 404

    def test_empty_name(self, make_config):
        registry = ProviderRegistry()
        with pytest.raises(EmptyProviderNameError):
            registry.register("", make_config())
        with pytest.raises(EmptyProviderNameError):
            registry.get("")

    def test_name_defaults_to_key(self, make_config):
        registry = ProviderRegistry()
        unnamed = OAuth2Config(authorize_url="https://a.example.com")
        named = make_config(name="Example")
        registry.register("alpha", unnamed)
        registry.register("beta", named)
        assert registry.get("alpha").name == "alpha"
        assert registry.get("beta").name == "Example"

    def test_registries_are_independent(self, make_config):
        first, second = ProviderRegistry(), ProviderRegistry()
        first.register("p", make_config())
        assert "p" not in second

    def test_client_for_provider(self, make_config, provider):
        registry = ProviderRegistry()
        registry.register("p", make_config())
        client = registry.client("p", transport=provider.transport)
        assert isinstance(client, OAuth2Client)
        assert client.config.transport is provider.transport

    def test_concurrent_registration(self, make_config):
        registry = ProviderRegistry()
        errors = []
        barrier = threading.Barrier(16)

        def worker(index):
            barrier.wait()
            try:
                registry.register(f"p{index}", make_config())
                registry.register("shared", make_config())
            except ProviderAlreadyRegisteredError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 17
        # Exactly one thread wins the shared name
        assert len(errors) == 15
