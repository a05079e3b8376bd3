"""Tests for the generic code exchange and user resolution steps."""

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import TOKEN_URL, USERINFO_URL
from oauthkit.common.exceptions import CodeExpiredError, TokenExchangeError, UserFetchError
from oauthkit.core.oauth.config import apply_default_config
from oauthkit.core.oauth.protocols import Token, exchange_code, map_user, parse_response_body, resolve_user

TOKEN_BODY = {"access_token": "A", "refresh_token": "R", "expires_in": 3600, "token_type": "bearer"}


@pytest.fixture
def config(make_config, provider):
    return apply_default_config(make_config(transport=provider.transport))


class TestParseResponseBody:
    def test_httpx_json(self):
        body, status = parse_response_body(httpx.Response(201, json={"a": 1}))
        assert body == {"a": 1}
        assert status == 201

    def test_form_encoded(self):
        response = httpx.Response(
            200,
            content=b"access_token=A&token_type=bearer",
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        assert parse_response_body(response) == ({"access_token": "A", "token_type": "bearer"}, 200)

    def test_plain_values(self):
        assert parse_response_body({"a": 1}) == ({"a": 1}, None)
        assert parse_response_body('{"a": 1}') == ({"a": 1}, None)
        assert parse_response_body(b"") == ({}, None)

    def test_malformed_body(self):
        with pytest.raises(ValueError):
            parse_response_body("<html>oops</html>")
        with pytest.raises(ValueError):
            parse_response_body(42)


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_generic_exchange(self, config, provider):
        provider.route("POST", TOKEN_URL, json=TOKEN_BODY)

        token = await exchange_code(config, "the-code", "the-state")

        assert token == Token(access_token="A", refresh_token="R", expires_in=3600, token_type="bearer")
        assert token.raw == TOKEN_BODY

        request = provider.requests_to(TOKEN_URL)[0]
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert request.headers["accept"] == "application/json"
        form = parse_qs(request.content.decode())
        assert form == {
            "client_id": ["client-123"],
            "client_secret": ["secret-456"],
            "grant_type": ["authorization_code"],
            "redirect_uri": ["https://app.example.com/login/callback"],
            "code": ["the-code"],
            "state": ["the-state"],
        }

    @pytest.mark.asyncio
    async def test_missing_fields_default_to_zero_values(self, config, provider):
        provider.route("POST", TOKEN_URL, json={"access_token": "A"})
        token = await exchange_code(config, "c", "s")
        assert token.refresh_token == ""
        assert token.expires_in == 0
        assert token.token_type == ""

    @pytest.mark.asyncio
    async def test_nested_token_paths(self, make_config, provider):
        config = apply_default_config(
            make_config(
                transport=provider.transport,
                token_mapping={
                    "access_token": "data.access_token",
                    "expires_in": "data.expires_in",
                },
            )
        )
        provider.route("POST", TOKEN_URL, json={"code": 0, "data": {"access_token": "N", "expires_in": "60"}})
        token = await exchange_code(config, "c", "s")
        assert token.access_token == "N"
        assert token.expires_in == 60

    @pytest.mark.asyncio
    async def test_client_secret_basic(self, make_config, provider):
        config = apply_default_config(
            make_config(transport=provider.transport, token_endpoint_auth_method="client_secret_basic")
        )
        provider.route("POST", TOKEN_URL, json=TOKEN_BODY)

        await exchange_code(config, "c", "s")

        request = provider.requests[0]
        expected = base64.b64encode(b"client-123:secret-456").decode()
        assert request.headers["authorization"] == f"Basic {expected}"
        assert "client_secret" not in parse_qs(request.content.decode())

    @pytest.mark.asyncio
    async def test_error_envelope(self, config, provider):
        provider.route("POST", TOKEN_URL, json={"code": 20003, "message": "invalid app"})
        with pytest.raises(TokenExchangeError) as exc_info:
            await exchange_code(config, "c", "s")
        assert not isinstance(exc_info.value, CodeExpiredError)
        assert exc_info.value.provider_code == 20003
        assert "invalid app" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_code_expired(self, config, provider):
        provider.route("POST", TOKEN_URL, json={"code": 5003002, "message": "code expired"})
        with pytest.raises(CodeExpiredError) as exc_info:
            await exchange_code(config, "c", "s")
        assert exc_info.value.provider_code == 5003002

    @pytest.mark.asyncio
    async def test_rfc_error_response(self, config, provider):
        provider.route(
            "POST",
            TOKEN_URL,
            json={"error": "bad_verification_code", "error_description": "The code passed is incorrect or expired."},
        )
        with pytest.raises(TokenExchangeError, match="incorrect or expired"):
            await exchange_code(config, "c", "s")

    @pytest.mark.asyncio
    async def test_http_error_status(self, config, provider):
        provider.route("POST", TOKEN_URL, status_code=500, content=b"")
        with pytest.raises(TokenExchangeError) as exc_info:
            await exchange_code(config, "c", "s")
        assert exc_info.value.http_status == 500

    @pytest.mark.asyncio
    async def test_unparseable_body(self, config, provider):
        provider.route("POST", TOKEN_URL, content=b"<html>maintenance</html>")
        with pytest.raises(TokenExchangeError) as exc_info:
            await exchange_code(config, "c", "s")
        assert isinstance(exc_info.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self, make_config):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        config = apply_default_config(make_config(transport=httpx.MockTransport(refuse)))
        with pytest.raises(TokenExchangeError) as exc_info:
            await exchange_code(config, "c", "s")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_hook_replaces_request(self, make_config, provider):
        calls = []

        async def hook(cfg, code, state):
            calls.append((cfg.client_id, code, state))
            return {"data": {"token": "H"}, "openid": "o-1"}

        config = apply_default_config(
            make_config(
                transport=provider.transport,
                get_access_token_response=hook,
                token_mapping={"access_token": "data.token"},
            )
        )
        token = await exchange_code(config, "c", "s")

        assert token.access_token == "H"
        assert token.raw["openid"] == "o-1"
        assert calls == [("client-123", "c", "s")]
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_hook_response_is_still_inspected(self, make_config):
        config = apply_default_config(
            make_config(get_access_token_response=lambda cfg, code, state: '{"code": 1, "message": "denied"}')
        )
        with pytest.raises(TokenExchangeError, match="denied"):
            await exchange_code(config, "c", "s")

    @pytest.mark.asyncio
    async def test_hook_failure_is_wrapped(self, make_config):
        def hook(cfg, code, state):
            raise RuntimeError("app token unavailable")

        config = apply_default_config(make_config(get_access_token_response=hook))
        with pytest.raises(TokenExchangeError) as exc_info:
            await exchange_code(config, "c", "s")
        assert isinstance(exc_info.value.__cause__, RuntimeError)


class TestResolveUser:
    TOKEN = Token(access_token="A", token_type="bearer")

    @pytest.mark.asyncio
    async def test_generic_profile(self, config, provider):
        provider.route("GET", USERINFO_URL, json={"id": "42", "email": "a@b.com", "groups": ["x", "y"]})

        user = await resolve_user(config, self.TOKEN, "c")

        assert user.id == "42"
        assert user.email == "a@b.com"
        assert user.groups == ["x", "y"]
        assert user.permissions == []
        assert user.nickname == ""
        assert user.avatar == ""
        assert user.homepage == ""

        request = provider.requests_to(USERINFO_URL)[0]
        assert request.headers["authorization"] == "Bearer A"

    @pytest.mark.asyncio
    async def test_id_and_email_come_from_their_own_paths(self, make_config, provider):
        config = apply_default_config(
            make_config(transport=provider.transport, user_mapping={"id": "uid", "email": "mail"})
        )
        provider.route("GET", USERINFO_URL, json={"uid": "u-1", "mail": "m@x.com"})
        user = await resolve_user(config, self.TOKEN, "c")
        assert (user.id, user.email) == ("u-1", "m@x.com")

    @pytest.mark.asyncio
    async def test_userinfo_headers(self, make_config, provider):
        config = apply_default_config(
            make_config(transport=provider.transport, userinfo_headers={"Accept": "application/vnd.github+json"})
        )
        provider.route("GET", USERINFO_URL, json={"id": 1})
        await resolve_user(config, self.TOKEN, "c")
        assert provider.requests[0].headers["accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_error_envelope(self, config, provider):
        provider.route("GET", USERINFO_URL, json={"code": 99991663, "message": "token invalid"})
        with pytest.raises(UserFetchError) as exc_info:
            await resolve_user(config, self.TOKEN, "c")
        assert exc_info.value.provider_code == 99991663

    @pytest.mark.asyncio
    async def test_http_error_status(self, config, provider):
        provider.route("GET", USERINFO_URL, status_code=401, json={"message": "Bad credentials"})
        with pytest.raises(UserFetchError) as exc_info:
            await resolve_user(config, self.TOKEN, "c")
        assert exc_info.value.http_status == 401

    @pytest.mark.asyncio
    async def test_hook_receives_token_and_code(self, make_config):
        seen = {}

        def hook(cfg, token, code):
            seen["token"] = token
            seen["code"] = code
            return json.dumps({"id": "by-code", "permissions": {"read": "r", "write": "w"}})

        config = apply_default_config(make_config(get_user_response=hook))
        user = await resolve_user(config, self.TOKEN, "auth-code")

        assert user.id == "by-code"
        assert user.permissions == ["r", "w"]
        assert seen == {"token": self.TOKEN, "code": "auth-code"}


def test_map_user_without_mapping():
    user = map_user({"id": "1"})
    assert user.id == ""
    assert user.to_dict()["groups"] == []
