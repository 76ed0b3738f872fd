"""
Configuration for the QQ Connect client.

The app id and secret come from the QQ Connect console (QQ_APPID, QQ_SECRET).
Build one QQConfig at startup and pass it to QQOAuthClient / QQAuthFlow; nothing
in request handling reads the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

from qq_auth.errors import ConfigError

AUTHORIZE_URL = "https://graph.qq.com/oauth2.0/authorize"
TOKEN_URL = "https://graph.qq.com/oauth2.0/token"
ID_URL = "https://graph.qq.com/oauth2.0/me"
USER_INFO_URL = "https://graph.qq.com/user/get_user_info"

DEFAULT_SCOPE = "get_user_info"
# Key under which the resolved openid is merged into the profile
IDENTITY_FIELD = "uid"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class QQConfig:
    client_id: str
    client_secret: str
    redirect_uri: Optional[str] = None
    default_scope: str = DEFAULT_SCOPE
    send_redirect_uri: bool = True
    uid_field: str = IDENTITY_FIELD
    timeout: float = 20.0
    authorize_url: str = AUTHORIZE_URL
    token_url: str = TOKEN_URL
    id_url: str = ID_URL
    user_info_url: str = USER_INFO_URL

    def __post_init__(self):
        if not self.client_id:
            raise ConfigError("client_id missing from QQ config (set QQ_APPID)")
        if not self.client_secret:
            raise ConfigError("client_secret missing from QQ config (set QQ_SECRET)")

    @classmethod
    def from_env(cls) -> "QQConfig":
        """Build the config from QQ_* environment variables (load .env first)."""
        return cls(
            client_id=os.getenv("QQ_APPID", ""),
            client_secret=os.getenv("QQ_SECRET", ""),
            redirect_uri=os.getenv("QQ_REDIRECT_URI") or None,
            default_scope=os.getenv("QQ_DEFAULT_SCOPE") or DEFAULT_SCOPE,
            send_redirect_uri=_env_bool("QQ_SEND_REDIRECT_URI", True),
            uid_field=os.getenv("QQ_UID_FIELD") or IDENTITY_FIELD,
            timeout=float(os.getenv("QQ_HTTP_TIMEOUT", "20")),
        )
