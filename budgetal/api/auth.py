"""
Session Authentication

The core never authenticates anyone. It receives an already resolved
User, or the request stops here with 401 before any core code runs.

DESIGN DECISION: How a session token maps to a user is a collaborator
(SessionResolver). The shipped resolver reads a static token map from
configuration; a real deployment plugs in its session store.
"""

from abc import ABC, abstractmethod
from typing import Mapping, Optional

from fastapi import HTTPException, Request

from budgetal.config import get_settings
from budgetal.models.budget import User


NOT_LOGGED_IN = "You are not logged in. Your session may have expired."


class SessionResolver(ABC):
    """Maps a session token to the user it belongs to."""

    @abstractmethod
    async def resolve(self, token: str) -> Optional[User]:
        """
        Look up a session token.

        Returns:
            The session's user, or None if the token is unknown
        """
        pass


class StaticSessionResolver(SessionResolver):
    """Resolves tokens from a fixed token -> user id map."""

    def __init__(self, sessions: Optional[Mapping[str, int]] = None):
        if sessions is None:
            sessions = get_settings().auth.sessions
        self._sessions = dict(sessions)

    async def resolve(self, token: str) -> Optional[User]:
        user_id = self._sessions.get(token)
        if user_id is None:
            return None
        return User(id=user_id)


async def current_user(request: Request) -> User:
    """
    FastAPI dependency returning the authenticated caller.

    Raises:
        HTTPException: 401 if the session header is missing or unknown
    """
    state = request.app.state
    token = request.headers.get(state.session_header)

    user = await state.session_resolver.resolve(token) if token else None
    if user is None:
        await state.audit_logger.log_unauthorized(
            path=request.url.path,
            reason="missing session" if not token else "unknown session",
            correlation_id=getattr(request.state, "correlation_id", None),
        )
        raise HTTPException(status_code=401, detail=NOT_LOGGED_IN)

    return user
