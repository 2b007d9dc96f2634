"""
Auth Module - Dependencies
===========================
FastAPI dependencies for caller identity, injected via Depends().

Two identities can be present at once:
  * user: from `Authorization: Bearer <jwt>` (sub = user id)
  * guest session: from the session cookie, issued on first contact
"""

from typing import Optional

from fastapi import Request, Response, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from config.settings import SESSION_COOKIE_NAME
from common.exceptions import AuthenticationError, AuthorizationError
from common.helpers import new_session_id, safe_int
from common.security import decode_token, get_session_cookie_kwargs
from modules.user.models import User


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    """
    Identify the current user from the bearer token.
    Returns User object or None.
    """
    token = _bearer_token(request)
    if not token:
        return None

    payload = decode_token(token)
    if not payload:
        return None

    user_id = safe_int(payload.get("sub"))
    if user_id is None:
        return None

    return db.query(User).filter(User.id == user_id, User.is_active == True).first()  # noqa: E712


def require_user(user=Depends(get_current_user)) -> User:
    """Raises 401 if not logged in."""
    if not user:
        raise AuthenticationError("Authentication required")
    return user


def require_admin(user=Depends(require_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user


def get_session_id(request: Request, response: Response) -> str:
    """Read the guest session cookie, issuing a new one when absent."""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        session_id = new_session_id()
        response.set_cookie(SESSION_COOKIE_NAME, session_id, **get_session_cookie_kwargs())
        # Error responses are built fresh by the handler; it re-sets the cookie from here
        request.state.issued_session_id = session_id
    request.state.session_id = session_id
    return session_id
