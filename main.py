"""
FastAPI app: QQ Connect login + session-based user.

Decisions:
- .env is loaded before the QQ config is built so QQ_APPID, QQ_SECRET and
  SESSION_SECRET are available (Ruff E402 suppressed for the late import).
- A missing QQ_APPID/QQ_SECRET fails at startup with ConfigError.
- Session secret from SESSION_SECRET env; default "change-me" is for dev only.
"""

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from starlette.middleware.sessions import SessionMiddleware

load_dotenv()

from qq_auth import QQConfig, create_auth_router  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me")

app = FastAPI()
app.add_middleware(SessionMiddleware, secret_key=SESSION_SECRET)
app.include_router(create_auth_router(QQConfig.from_env()))


@app.get("/")
async def home(request: Request):
    user = request.session.get("user")
    return {"logged_in": bool(user), "user": user}
