"""Errors raised by the QQ login adapter."""

from authlib.integrations.base_client import OAuthError


class ConfigError(ValueError):
    """Raised at startup when required client credentials are missing."""


class IdentityError(OAuthError):
    """Raised when the openid lookup fails (transport, malformed body, or provider error)."""

    def __init__(self, description: str):
        super().__init__(error="identity_error", description=description)


class ProfileError(OAuthError):
    """Raised when the user profile fetch fails."""

    def __init__(self, description: str):
        super().__init__(error="profile_error", description=description)
