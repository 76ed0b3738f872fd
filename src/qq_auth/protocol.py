"""
Protocols for the collaborators of the login flow.

QQAuthFlow drives any object shaped like OAuthProvider (QQOAuthClient in
practice, a fake in tests) and keeps the CSRF state in a StateStore supplied
by the host app (e.g. the Starlette session).
"""

from typing import Optional, Protocol, runtime_checkable

from qq_auth.models import OpaqueIdentity, TokenResult


@runtime_checkable
class OAuthProvider(Protocol):
    """Protocol for the provider side of the QQ authorization-code flow."""

    name: str

    def build_authorization_url(self, state: str, scope: str, redirect_uri: Optional[str]) -> str:
        """Return the URL the user is redirected to for login and consent."""
        ...

    async def exchange_code_for_token(self, code: str, redirect_uri: Optional[str]) -> TokenResult:
        """Exchange the callback code for a token; never raises on provider failure."""
        ...

    async def refresh_token(self, refresh_token: str) -> TokenResult:
        """Obtain a fresh token from a refresh token."""
        ...

    async def resolve_identity(self, access_token: Optional[str]) -> OpaqueIdentity:
        """Look up the openid for an access token. Raises IdentityError."""
        ...

    async def fetch_user_profile(self, access_token: str, identity: OpaqueIdentity) -> dict:
        """Fetch the user profile with the identity merged in. Raises ProfileError."""
        ...


@runtime_checkable
class StateStore(Protocol):
    """Short-lived key/value store; take() reads and deletes in one step."""

    def put(self, key: str, value: str) -> None: ...

    def take(self, key: str) -> Optional[str]: ...
