"""
QQ Connect OAuth2 provider.

QQ speaks a non-standard OAuth2 dialect:
- the token endpoint is called with GET and answers `access_token=...&expires_in=...`
  on success but a JSONP body `callback( {"error": ..., "error_description": ...} );`
  on failure;
- the token does not identify the user; the openid has to be looked up on a
  separate endpoint (JSONP again) before the profile can be fetched;
- the profile endpoint answers HTTP 200 with `ret != 0` and `msg` on errors.

Token exchange never raises: failures come back as a TokenResult without an
access token. Identity and profile lookups raise IdentityError / ProfileError.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from authlib.common.urls import add_params_to_uri

from qq_auth.config import IDENTITY_FIELD, QQConfig
from qq_auth.errors import IdentityError, ProfileError
from qq_auth.models import AuthorizationRequest, OpaqueIdentity, TokenResult
from qq_auth.normalize import NormalizationErrorKind, Shape, normalize

logger = logging.getLogger(__name__)

TOKEN_FETCH_FAILED = {"error": "fail", "error_description": "access_token fetch fail"}
USER_INFO_FAILED = "get user info fail"
OPENID_FAILED = "get openid fail"


class QQOAuthClient:
    """OAuth client for QQ Connect (graph.qq.com)."""

    name: str = "qq"

    def __init__(self, config: QQConfig, http_client: Optional[httpx.AsyncClient] = None):
        """
        http_client is the transport used for every provider call. When omitted,
        a short-lived httpx.AsyncClient is opened per call with config.timeout.
        """
        self.config = config
        self.http_client = http_client

    async def _get(self, url: str, params: dict[str, Any]) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.get(url, params=params)
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.get(url, params=params)

    # Request phase

    def authorization_request(
        self, state: str, scope: Optional[str] = None, redirect_uri: Optional[str] = None
    ) -> AuthorizationRequest:
        return AuthorizationRequest(
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            redirect_uri=self.config.redirect_uri or redirect_uri,
            scope=scope or self.config.default_scope,
            state=state,
        )

    def build_authorization_url(
        self, state: str, scope: Optional[str] = None, redirect_uri: Optional[str] = None
    ) -> str:
        """Build the authorize URL; no network call."""
        req = self.authorization_request(state, scope, redirect_uri)
        params = [("response_type", "code"), ("client_id", req.client_id)]
        if self.config.send_redirect_uri and req.redirect_uri:
            params.append(("redirect_uri", req.redirect_uri))
        params += [("scope", req.scope), ("state", req.state)]
        return add_params_to_uri(self.config.authorize_url, params)

    # Token endpoint

    async def exchange_code_for_token(self, code: str, redirect_uri: Optional[str] = None) -> TokenResult:
        """Exchange the authorization code; failures are returned, not raised."""
        params = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "redirect_uri": self.config.redirect_uri or redirect_uri or "",
        }
        return await self._request_token(params)

    async def refresh_token(self, refresh_token: str) -> TokenResult:
        """Exchange a refresh token for a new access token."""
        params = {
            "grant_type": "refresh_token",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": refresh_token,
        }
        return await self._request_token(params)

    async def _request_token(self, params: dict[str, str]) -> TokenResult:
        grant_type = params["grant_type"]
        try:
            response = await self._get(self.config.token_url, params)
        except httpx.HTTPError as e:
            logger.warning(f"Token request failed | grant_type={grant_type} error={e!r}")
            return TokenResult(other_params=dict(TOKEN_FETCH_FAILED))

        if response.status_code != 200:
            logger.warning(f"Token request failed | grant_type={grant_type} status={response.status_code}")
            return TokenResult(other_params=dict(TOKEN_FETCH_FAILED))

        token = parse_token_body(response.content)
        if token.ok:
            logger.info(f"Token request SUCCESS | grant_type={grant_type}")
        else:
            logger.warning(
                f"Token request rejected | grant_type={grant_type} "
                f"error={token.other_params.get('error')} "
                f"description={token.other_params.get('error_description')}"
            )
        return token

    # Identity and profile

    async def resolve_identity(self, access_token: Optional[str]) -> OpaqueIdentity:
        """
        Look up the openid bound to `access_token`.

        Raises IdentityError for an empty token (without calling QQ), transport
        failures, undecodable bodies, and error payloads in either of QQ's
        formats ({error, error_description} or {code, msg}).
        """
        if not access_token:
            raise IdentityError("token is nil")

        try:
            response = await self._get(self.config.id_url, {"access_token": access_token})
        except httpx.HTTPError as e:
            logger.warning(f"openid lookup failed: {e!r}")
            raise IdentityError(OPENID_FAILED) from e

        if response.status_code != 200:
            logger.warning(f"openid lookup failed | status={response.status_code}")
            raise IdentityError(OPENID_FAILED)

        result = normalize(response.content, Shape.JSONP_WRAPPED)
        if not result.ok:
            raise IdentityError(f"malformed openid response: {result.error.kind.value}")

        data = result.data
        if "client_id" in data and data.get("openid"):
            return OpaqueIdentity(id=str(data["openid"]))
        if "error" in data and "error_description" in data:
            raise IdentityError(str(data["error_description"]))
        if "code" in data and "msg" in data:
            raise IdentityError(str(data["msg"]))
        raise IdentityError("unexpected openid response")

    async def fetch_user_profile(self, access_token: str, identity: OpaqueIdentity) -> dict[str, Any]:
        """
        Fetch get_user_info for `identity`. The openid is merged into the
        returned profile under IDENTITY_FIELD.
        """
        params = {
            "format": "json",
            "openid": identity.id,
            "oauth_consumer_key": self.config.client_id,
            "access_token": access_token,
        }
        try:
            response = await self._get(self.config.user_info_url, params)
        except httpx.HTTPError as e:
            logger.warning(f"get_user_info failed: {e!r}")
            raise ProfileError(USER_INFO_FAILED) from e

        if response.status_code == 401:
            raise ProfileError("unauthorized")
        if response.status_code != 200:
            logger.warning(f"get_user_info failed | status={response.status_code}")
            raise ProfileError(USER_INFO_FAILED)

        result = normalize(response.content, Shape.PLAIN_JSON)
        if not result.ok:
            raise ProfileError(USER_INFO_FAILED)

        profile = result.data
        if profile.get("ret") == 0:
            return {**profile, IDENTITY_FIELD: identity.id}
        if "msg" in profile:
            raise ProfileError(str(profile["msg"]))
        raise ProfileError(USER_INFO_FAILED)


def parse_token_body(body) -> TokenResult:
    """
    Turn a 200 response from the token endpoint into a TokenResult.

    The urlencoded success shape is tried first; a JSONP body is QQ's error
    shape and its fields are surfaced verbatim in other_params.
    """
    result = normalize(body, Shape.URL_ENCODED)
    if not result.ok and result.error.kind is NormalizationErrorKind.WRAPPER_MISMATCH:
        result = normalize(body, Shape.JSONP_WRAPPED)
        if result.ok:
            return TokenResult(other_params=dict(result.data))
    if not result.ok:
        return TokenResult(other_params=dict(TOKEN_FETCH_FAILED))

    fields = dict(result.data)
    access_token = fields.pop("access_token", None) or None
    refresh_token = fields.pop("refresh_token", None) or None
    expires_in = fields.pop("expires_in", None)

    expires_at = None
    if expires_in:
        try:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
        except (ValueError, OverflowError):
            logger.warning(f"Ignoring unusable expires_in={expires_in!r}")

    return TokenResult(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="Bearer",
        expires_at=expires_at,
        other_params=fields,
    )
