"""
Login flow for QQ: request phase and callback phase.

The two phases are independent calls tied together only by the CSRF state
kept in a StateStore. The callback runs token exchange, openid lookup and
profile fetch strictly in sequence and stops at the first failure.
"""

import hmac
import logging
import secrets
from typing import Any, Optional, Union

from authlib.integrations.base_client import OAuthError

from qq_auth.config import QQConfig
from qq_auth.models import (
    AuthError,
    AuthFailure,
    AuthorizationRedirect,
    AuthResult,
    Credentials,
    FlowState,
    Gender,
    Info,
    PendingState,
    Raw,
    TokenResult,
)
from qq_auth.protocol import OAuthProvider, StateStore
from qq_auth.qq import OPENID_FAILED, USER_INFO_FAILED
from qq_auth.session import APP_STATE_KEY, STATE_KEY

logger = logging.getLogger(__name__)

# Literal values QQ has been observed to send; anything else is DEFAULT.
GENDERS = {
    "男": Gender.MALE,
    "女": Gender.FEMALE,
    "male": Gender.MALE,
    "female": Gender.FEMALE,
}

# Region fields, broad to narrow
AREA_FIELDS = ("province", "city")


def secure_random_hex(n: int = 16) -> str:
    return secrets.token_hex(n)


def present(value: Any) -> bool:
    return value is not None and str(value) != ""


def normalize_gender(value: Any) -> Gender:
    if not isinstance(value, str):
        return Gender.DEFAULT
    return GENDERS.get(value, Gender.DEFAULT)


def collect_areas(profile: dict) -> list[str]:
    return [str(profile[f]) for f in AREA_FIELDS if present(profile.get(f))]


def split_scopes(scope: Optional[str]) -> list[str]:
    return [s for s in (scope or "").split(",") if s]


def states_match(returned: Optional[str], stored: Optional[str]) -> bool:
    if not returned or not stored:
        return False
    return hmac.compare_digest(returned.encode("utf-8"), stored.encode("utf-8"))


class QQAuthFlow:
    """Drives one QQ login attempt through its request and callback phases."""

    def __init__(self, config: QQConfig, provider: OAuthProvider):
        self.config = config
        self.provider = provider

    def begin_request(
        self,
        scope: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        state: Optional[str] = None,
    ) -> AuthorizationRedirect:
        """
        Generate the CSRF state and the authorize URL; the caller persists `pending`.

        The CSRF token is always freshly generated. A caller-supplied `state` is
        carried alongside it as `app_state` and never sent as the token.
        """
        pending = PendingState(state=secure_random_hex(), app_state=state)
        url = self.provider.build_authorization_url(
            pending.state, scope or self.config.default_scope, redirect_uri
        )
        logger.info(f"QQ login {FlowState.IDLE.value} -> {FlowState.REQUEST_ISSUED.value}")
        return AuthorizationRedirect(url=url, pending=pending)

    async def complete_callback(
        self,
        code: Optional[str],
        returned_state: Optional[str],
        stored_state: Optional[str],
        redirect_uri: Optional[str] = None,
    ) -> Union[AuthResult, AuthFailure]:
        """
        Validate the callback and run token -> openid -> profile.

        `stored_state` must already have been taken out of the state store by
        the caller (see callback()).
        """
        logger.info(f"QQ login {FlowState.CALLBACK_PENDING.value} | stored_state_present={stored_state is not None}")

        if not code:
            return self._fail("missing_code", "No code received")

        if not states_match(returned_state, stored_state):
            return self._fail("state_mismatch", "state mismatch")

        token = await self.provider.exchange_code_for_token(code, redirect_uri)
        if not token.ok:
            kind = token.other_params.get("error")
            message = token.other_params.get("error_description")
            return self._fail(
                str(kind) if present(kind) else "token_error",
                str(message) if present(message) else "No access token received",
            )

        try:
            identity = await self.provider.resolve_identity(token.access_token)
        except OAuthError as e:
            return self._fail("identity_error", e.description or OPENID_FAILED)

        try:
            profile = await self.provider.fetch_user_profile(token.access_token, identity)
        except OAuthError as e:
            return self._fail("profile_error", e.description or USER_INFO_FAILED)

        result = self.build_result(token, profile)
        logger.info(f"QQ login {FlowState.SUCCEEDED.value} | uid_present={result.uid is not None}")
        return result

    def build_result(self, token: TokenResult, profile: dict) -> AuthResult:
        uid = profile.get(self.config.uid_field)
        credentials = Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=token.expires_at,
            token_type=token.token_type,
            expires=token.expires_at is not None,
            scopes=split_scopes(token.other_params.get("scope")),
        )
        info = Info(
            nickname=profile.get("nickname"),
            image=profile.get("figureurl_qq"),
            gender=normalize_gender(profile.get("gender")),
            areas=collect_areas(profile),
        )
        return AuthResult(
            uid=str(uid) if uid is not None else None,
            credentials=credentials,
            info=info,
            raw=Raw(token=token, profile=profile),
        )

    # Caller-facing entry points

    def request(
        self,
        store: StateStore,
        scope: Optional[str] = None,
        state: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> AuthorizationRedirect:
        """Request phase: persist the CSRF state and return where to redirect the user."""
        redirect = self.begin_request(scope=scope, redirect_uri=redirect_uri, state=state)
        store.put(STATE_KEY, redirect.pending.state)
        if redirect.pending.app_state:
            store.put(APP_STATE_KEY, redirect.pending.app_state)
        return redirect

    async def callback(
        self,
        store: StateStore,
        code: Optional[str] = None,
        state: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> Union[AuthResult, AuthFailure]:
        """Callback phase: consume the stored state (single use) and complete the login."""
        stored_state = store.take(STATE_KEY)
        app_state = store.take(APP_STATE_KEY)
        outcome = await self.complete_callback(code, state, stored_state, redirect_uri)
        if isinstance(outcome, AuthResult):
            outcome.app_state = app_state
        return outcome

    def _fail(self, kind: str, message: str) -> AuthFailure:
        logger.warning(f"QQ login {FlowState.FAILED.value} | kind={kind} message={message}")
        return AuthFailure(errors=[AuthError(kind=kind, message=message)])
