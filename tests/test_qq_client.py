"""Tests for the QQ Connect provider client."""

import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from qq_auth import QQConfig, QQOAuthClient
from qq_auth.config import ID_URL, TOKEN_URL, USER_INFO_URL
from qq_auth.errors import IdentityError, ProfileError
from qq_auth.models import OpaqueIdentity


def _query(url) -> dict:
    return {k: v[0] for k, v in parse_qs(urlparse(str(url)).query).items()}


class TestAuthorizationUrl:
    def test_required_params(self, client):
        url = client.build_authorization_url("abc123", "get_user_info", "https://example.com/cb")

        assert url.startswith("https://graph.qq.com/oauth2.0/authorize?")
        assert _query(url) == {
            "response_type": "code",
            "client_id": "101",
            "redirect_uri": "https://example.com/cb",
            "scope": "get_user_info",
            "state": "abc123",
        }

    def test_is_deterministic(self, client):
        a = client.build_authorization_url("s", "get_user_info", "https://example.com/cb")
        b = client.build_authorization_url("s", "get_user_info", "https://example.com/cb")
        assert a == b

    def test_default_scope_and_configured_redirect(self):
        config = QQConfig(client_id="101", client_secret="s", redirect_uri="https://fixed/cb")
        url = QQOAuthClient(config).build_authorization_url("s", None, "https://ignored/cb")

        params = _query(url)
        assert params["scope"] == "get_user_info"
        assert params["redirect_uri"] == "https://fixed/cb"

    def test_redirect_uri_can_be_omitted(self):
        config = QQConfig(client_id="101", client_secret="s", send_redirect_uri=False)
        url = QQOAuthClient(config).build_authorization_url("s", "get_user_info", "https://example.com/cb")

        assert "redirect_uri" not in _query(url)


class TestTokenExchange:
    @pytest.mark.asyncio
    async def test_success(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text="access_token=AT1&refresh_token=RT1&expires_in=7200")

        token = await client.exchange_code_for_token("CODE", "https://example.com/cb")

        assert token.access_token == "AT1"
        assert token.refresh_token == "RT1"
        assert token.token_type == "Bearer"
        expected = datetime.now(timezone.utc) + timedelta(seconds=7200)
        assert abs((token.expires_at - expected).total_seconds()) <= 1

    @pytest.mark.asyncio
    async def test_request_params(self, client, fake_qq):
        await client.exchange_code_for_token("CODE", "https://example.com/cb")

        (request,) = fake_qq.calls_to(TOKEN_URL)
        assert request.method == "GET"
        assert _query(request.url) == {
            "grant_type": "authorization_code",
            "client_id": "101",
            "client_secret": "s3cret",
            "code": "CODE",
            "redirect_uri": "https://example.com/cb",
        }

    @pytest.mark.asyncio
    async def test_scope_kept_in_other_params(self, client):
        token = await client.exchange_code_for_token("CODE")
        assert token.other_params == {"scope": "get_user_info,list_album"}

    @pytest.mark.asyncio
    async def test_jsonp_error(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text='callback( {"error":10003,"error_description":"invalid grant"} )')

        token = await client.exchange_code_for_token("CODE")

        assert not token.access_token
        assert token.other_params["error_description"] == "invalid grant"
        assert token.other_params["error"] == 10003

    @pytest.mark.asyncio
    async def test_transport_failure_is_encoded(self, client, fake_qq):
        fake_qq.fail(TOKEN_URL)

        token = await client.exchange_code_for_token("CODE")

        assert token.access_token is None
        assert token.other_params == {"error": "fail", "error_description": "access_token fetch fail"}

    @pytest.mark.asyncio
    async def test_non_200_is_encoded(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, status_code=502, text="bad gateway")

        token = await client.exchange_code_for_token("CODE")

        assert not token.ok
        assert token.other_params["error"] == "fail"

    @pytest.mark.asyncio
    async def test_garbage_body(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text="<html>oops</html>")

        token = await client.exchange_code_for_token("CODE")

        assert not token.ok
        assert token.other_params["error_description"] == "access_token fetch fail"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", ["99999999999999", "999999999999"])
    async def test_overflowing_expires_in(self, client, fake_qq, expires_in):
        fake_qq.respond(TOKEN_URL, text=f"access_token=AT1&refresh_token=RT1&expires_in={expires_in}")

        token = await client.exchange_code_for_token("CODE")

        assert token.access_token == "AT1"
        assert token.refresh_token == "RT1"
        assert token.expires_at is None

    @pytest.mark.asyncio
    async def test_non_numeric_expires_in(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text="access_token=AT1&expires_in=soon")

        token = await client.exchange_code_for_token("CODE")

        assert token.access_token == "AT1"
        assert token.expires_at is None

    @pytest.mark.asyncio
    async def test_refresh_with_overflowing_expires_in(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text="access_token=AT2&expires_in=99999999999999")

        token = await client.refresh_token("RT1")

        assert token.ok
        assert token.expires_at is None

    @pytest.mark.asyncio
    async def test_refresh(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text="access_token=AT2&refresh_token=RT2&expires_in=60")

        token = await client.refresh_token("RT1")

        assert token.access_token == "AT2"
        assert _query(fake_qq.calls[0].url) == {
            "grant_type": "refresh_token",
            "client_id": "101",
            "client_secret": "s3cret",
            "refresh_token": "RT1",
        }

    @pytest.mark.asyncio
    async def test_refresh_error(self, client, fake_qq):
        fake_qq.respond(TOKEN_URL, text='callback( {"error":100015,"error_description":"access token check failed"} );\n')

        token = await client.refresh_token("RT1")

        assert not token.ok
        assert token.other_params["error_description"] == "access token check failed"


class TestResolveIdentity:
    @pytest.mark.asyncio
    async def test_success(self, client, fake_qq):
        fake_qq.respond(ID_URL, text='callback( {"client_id":"X","openid":"O1"} )')

        identity = await client.resolve_identity("AT1")

        assert identity == OpaqueIdentity(id="O1")
        assert _query(fake_qq.calls[0].url) == {"access_token": "AT1"}

    @pytest.mark.asyncio
    async def test_code_msg_error(self, client, fake_qq):
        fake_qq.respond(ID_URL, text='callback( {"code":100,"msg":"param error"} )')

        with pytest.raises(IdentityError) as exc_info:
            await client.resolve_identity("AT1")
        assert exc_info.value.description == "param error"

    @pytest.mark.asyncio
    async def test_error_description(self, client, fake_qq):
        fake_qq.respond(ID_URL, text='callback( {"error":100016,"error_description":"access token check failed"} );\n')

        with pytest.raises(IdentityError) as exc_info:
            await client.resolve_identity("AT1")
        assert exc_info.value.description == "access token check failed"

    @pytest.mark.asyncio
    async def test_unknown_shape(self, client, fake_qq):
        fake_qq.respond(ID_URL, text='callback( {"foo":"bar"} )')

        with pytest.raises(IdentityError):
            await client.resolve_identity("AT1")

    @pytest.mark.asyncio
    async def test_malformed(self, client, fake_qq):
        fake_qq.respond(ID_URL, text="oops")

        with pytest.raises(IdentityError):
            await client.resolve_identity("AT1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, ""])
    async def test_empty_token_makes_no_call(self, client, fake_qq, token):
        with pytest.raises(IdentityError):
            await client.resolve_identity(token)
        assert fake_qq.calls == []

    @pytest.mark.asyncio
    async def test_transport_failure(self, client, fake_qq):
        fake_qq.fail(ID_URL)

        with pytest.raises(IdentityError):
            await client.resolve_identity("AT1")


class TestFetchUserProfile:
    @pytest.mark.asyncio
    async def test_success_merges_openid(self, client, fake_qq):
        profile = await client.fetch_user_profile("AT1", OpaqueIdentity(id="O1"))

        assert profile["uid"] == "O1"
        assert profile["nickname"] == "Alice"
        assert _query(fake_qq.calls[0].url) == {
            "format": "json",
            "openid": "O1",
            "oauth_consumer_key": "101",
            "access_token": "AT1",
        }

    @pytest.mark.asyncio
    async def test_provider_error(self, client, fake_qq):
        fake_qq.respond(USER_INFO_URL, text=json.dumps({"ret": 1002, "msg": "请先登录"}))

        with pytest.raises(ProfileError) as exc_info:
            await client.fetch_user_profile("AT1", OpaqueIdentity(id="O1"))
        assert exc_info.value.description == "请先登录"

    @pytest.mark.asyncio
    async def test_unknown_shape(self, client, fake_qq):
        fake_qq.respond(USER_INFO_URL, text=json.dumps({"ret": -1}))

        with pytest.raises(ProfileError) as exc_info:
            await client.fetch_user_profile("AT1", OpaqueIdentity(id="O1"))
        assert exc_info.value.description == "get user info fail"

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, fake_qq):
        fake_qq.respond(USER_INFO_URL, text="not json")

        with pytest.raises(ProfileError):
            await client.fetch_user_profile("AT1", OpaqueIdentity(id="O1"))

    @pytest.mark.asyncio
    async def test_unauthorized(self, client, fake_qq):
        fake_qq.respond(USER_INFO_URL, status_code=401)

        with pytest.raises(ProfileError) as exc_info:
            await client.fetch_user_profile("AT1", OpaqueIdentity(id="O1"))
        assert exc_info.value.description == "unauthorized"

    @pytest.mark.asyncio
    async def test_transport_failure(self, client, fake_qq):
        fake_qq.fail(USER_INFO_URL)

        with pytest.raises(ProfileError) as exc_info:
            await client.fetch_user_profile("AT1", OpaqueIdentity(id="O1"))
        assert exc_info.value.description == "get user info fail"


def test_client_satisfies_provider_protocol(client):
    from qq_auth.protocol import OAuthProvider

    assert isinstance(client, OAuthProvider)
