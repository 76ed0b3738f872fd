"""
QQ Connect login for FastAPI applications.

Exposes the configuration (QQConfig), the provider client (QQOAuthClient),
the two-phase login flow (QQAuthFlow), CSRF state stores, and the FastAPI
auth router factory (create_auth_router).
"""

from .config import QQConfig
from .errors import ConfigError, IdentityError, ProfileError
from .flow import QQAuthFlow
from .models import (
    AuthError,
    AuthFailure,
    AuthorizationRedirect,
    AuthResult,
    FlowState,
    Gender,
    OpaqueIdentity,
    PendingState,
    TokenResult,
)
from .normalize import Shape, normalize
from .qq import QQOAuthClient
from .router import create_auth_router
from .session import MemoryStateStore, SessionStateStore

__all__ = [
    "QQConfig",
    "ConfigError",
    "IdentityError",
    "ProfileError",
    "QQAuthFlow",
    "QQOAuthClient",
    "AuthError",
    "AuthFailure",
    "AuthorizationRedirect",
    "AuthResult",
    "FlowState",
    "Gender",
    "OpaqueIdentity",
    "PendingState",
    "TokenResult",
    "Shape",
    "normalize",
    "MemoryStateStore",
    "SessionStateStore",
    "create_auth_router",
]
