"""Request dependencies: caller identity and the process-owned collaborators."""

from fastapi import Header, HTTPException, Request

from api.rate_limit import ChatRateLimiter
from circle.engine import SessionEngine

USER_ID_HEADER = "X-User-Id"


def get_user_id(x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER)) -> str:
    """The header value is trusted as an already-authenticated user id."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(401, f"{USER_ID_HEADER} header required")
    return user_id


def get_engine(request: Request) -> SessionEngine:
    return request.app.state.engine


def get_chat_limiter(request: Request) -> ChatRateLimiter:
    return request.app.state.chat_limiter
