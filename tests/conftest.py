"""Pytest configuration and fixtures."""

import json
from typing import Callable

import httpx
import pytest

from qq_auth import QQAuthFlow, QQConfig, QQOAuthClient
from qq_auth.config import ID_URL, TOKEN_URL, USER_INFO_URL

TOKEN_OK = "access_token=AT1&expires_in=7200&refresh_token=RT1&scope=get_user_info,list_album"
OPENID_OK = 'callback( {"client_id":"101","openid":"O1"} );\n'
PROFILE_OK = {
    "ret": 0,
    "msg": "",
    "nickname": "Alice",
    "figureurl_qq": "http://x/a.png",
    "gender": "女",
    "province": "Guangdong",
    "city": "Shenzhen",
}


def _endpoint(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class FakeQQ:
    """Routes requests to canned responses per endpoint and records every call."""

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {
            TOKEN_URL: lambda request: httpx.Response(200, text=TOKEN_OK),
            ID_URL: lambda request: httpx.Response(200, text=OPENID_OK),
            USER_INFO_URL: lambda request: httpx.Response(200, text=json.dumps(PROFILE_OK)),
        }

    def respond(self, url: str, status_code: int = 200, text: str = "") -> None:
        self.routes[url] = lambda request: httpx.Response(status_code, text=text)

    def fail(self, url: str) -> None:
        def _raise(request):
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[url] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        url = _endpoint(request)
        return self.routes[url](request)

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [c for c in self.calls if _endpoint(c) == url]


@pytest.fixture
def config():
    return QQConfig(client_id="101", client_secret="s3cret")


@pytest.fixture
def fake_qq():
    return FakeQQ()


@pytest.fixture
def http_client(fake_qq):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_qq.handler))


@pytest.fixture
def client(config, http_client):
    return QQOAuthClient(config, http_client=http_client)


@pytest.fixture
def flow(config, client):
    return QQAuthFlow(config, client)
