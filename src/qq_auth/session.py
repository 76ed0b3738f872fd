"""
CSRF state stores.

SessionStateStore keeps the state in the Starlette session cookie of the user
being logged in (requires SessionMiddleware). MemoryStateStore is an
in-process store for tests and single-worker deployments; it is not shared
across processes.
"""

import threading
from typing import MutableMapping, Optional

from starlette.requests import Request

STATE_KEY = "qq_auth_state"
# Opaque value the app asked to get back after login; not a CSRF token
APP_STATE_KEY = "qq_auth_app_state"


class SessionStateStore:
    """StateStore backed by request.session."""

    def __init__(self, session: MutableMapping):
        self.session = session

    @classmethod
    def from_request(cls, request: Request) -> "SessionStateStore":
        return cls(request.session)

    def put(self, key: str, value: str) -> None:
        self.session[key] = value

    def take(self, key: str) -> Optional[str]:
        return self.session.pop(key, None)


class MemoryStateStore:
    """StateStore backed by a dict guarded by a lock."""

    def __init__(self):
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def take(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
