"""
FastAPI auth router: QQ login, callback, /me, logout.

Builds an APIRouter around QQAuthFlow. The CSRF state lives in the Starlette
session, so the app must install SessionMiddleware.
"""

import time
from typing import Optional

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse

from qq_auth.config import QQConfig
from qq_auth.flow import QQAuthFlow
from qq_auth.models import AuthFailure
from qq_auth.qq import QQOAuthClient
from qq_auth.session import SessionStateStore


def create_auth_router(config: QQConfig, http_client: Optional[httpx.AsyncClient] = None):
    """Create an APIRouter with /auth/qq, /auth/qq/callback, /me, and /logout endpoints."""
    flow = QQAuthFlow(config, QQOAuthClient(config, http_client=http_client))
    router = APIRouter()

    @router.get("/auth/qq")
    async def login(request: Request, scope: Optional[str] = None):
        """Redirect the user to the QQ login page."""
        redirect = flow.request(
            SessionStateStore.from_request(request),
            scope=scope,
            redirect_uri=str(request.url_for("qq_callback")),
        )
        return RedirectResponse(url=redirect.url)

    @router.get("/auth/qq/callback", name="qq_callback")
    async def qq_callback(request: Request, code: Optional[str] = None, state: Optional[str] = None):
        """Handle the QQ callback: validate state, log the user in, redirect to /me."""
        outcome = await flow.callback(
            SessionStateStore.from_request(request),
            code=code,
            state=state,
            redirect_uri=str(request.url_for("qq_callback")),
        )
        if isinstance(outcome, AuthFailure):
            return JSONResponse(outcome.to_dict(), status_code=400)

        request.session["user"] = outcome.summary()
        request.session["logged_in_at"] = int(time.time())
        return RedirectResponse(url="/me")

    @router.get("/me")
    async def me(request: Request):
        """Return the current user; redirect to the QQ login if not authenticated."""
        if "user" not in request.session:
            return RedirectResponse(url="/auth/qq")
        return {
            "user": request.session["user"],
            "logged_in_at": request.session.get("logged_in_at"),
        }

    @router.get("/logout")
    async def logout(request: Request):
        """Clear session and redirect to home."""
        request.session.clear()
        return RedirectResponse(url="/")

    return router
