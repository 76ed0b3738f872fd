"""Data carried through one QQ login attempt (request phase to callback phase)."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class FlowState(str, Enum):
    IDLE = "idle"
    REQUEST_ISSUED = "request_issued"
    CALLBACK_PENDING = "callback_pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    DEFAULT = "default"


@dataclass(frozen=True)
class PendingState:
    """CSRF state kept in the caller's store between request and callback."""

    state: str
    app_state: Optional[str] = None


@dataclass(frozen=True)
class AuthorizationRequest:
    client_id: str
    client_secret: str
    redirect_uri: Optional[str]
    scope: str
    state: str


@dataclass
class TokenResult:
    """
    Outcome of a token exchange or refresh. An empty access_token means the
    exchange failed; the provider's reason is in other_params["error"] and
    other_params["error_description"] when it gave one.
    """

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    other_params: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return bool(self.access_token)


@dataclass(frozen=True)
class OpaqueIdentity:
    id: str


@dataclass
class Credentials:
    token: str
    refresh_token: Optional[str]
    expires_at: Optional[datetime]
    token_type: str
    expires: bool
    scopes: list[str]


@dataclass
class Info:
    nickname: Optional[str]
    image: Optional[str]
    gender: Gender
    areas: list[str]


@dataclass
class Raw:
    token: TokenResult
    profile: dict[str, Any]


@dataclass
class AuthResult:
    uid: Optional[str]
    credentials: Credentials
    info: Info
    raw: Raw
    app_state: Optional[str] = None

    flow_state = FlowState.SUCCEEDED

    def summary(self) -> dict[str, Any]:
        """JSON-safe view suitable for a session cookie."""
        return {
            "uid": self.uid,
            "nickname": self.info.nickname,
            "image": self.info.image,
            "gender": self.info.gender.value,
            "areas": list(self.info.areas),
            "scopes": list(self.credentials.scopes),
        }


@dataclass(frozen=True)
class AuthError:
    kind: str
    message: str


@dataclass
class AuthFailure:
    """Ordered list of errors, in the order they were detected."""

    errors: list[AuthError]

    flow_state = FlowState.FAILED

    @property
    def kinds(self) -> list[str]:
        return [e.kind for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        return {"errors": [{"kind": e.kind, "message": e.message} for e in self.errors]}


@dataclass(frozen=True)
class AuthorizationRedirect:
    url: str
    pending: PendingState

    flow_state = FlowState.REQUEST_ISSUED
