"""Bearer-token authentication and role checks.

Every API route except the health check requires a token.  Tokens are issued
by the admin CLI and only their SHA-256 digest is stored.  Read routes accept
any role; mutating routes and exports require ``admin``.
"""
from __future__ import annotations

import hashlib
import logging
import secrets

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from playpartner.db import db_session
from playpartner.models import User

log = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def new_token() -> str:
    return secrets.token_urlsafe(32)


def user_for_token(session: Session, token: str) -> User | None:
    if not token:
        return None
    return session.execute(
        select(User).where(User.token_hash == hash_token(token))
    ).scalars().first()


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.execute(
        select(User).where(User.email == email.strip().lower())
    ).scalars().first()


def create_user(
    session: Session, email: str, role: str = "viewer", first_name: str = "", last_name: str = "",
) -> tuple[User, str]:
    """Create a user and return it with its plaintext token (caller must commit)."""
    token = new_token()
    user = User(
        email=email.strip().lower(), role=role, first_name=first_name,
        last_name=last_name, token_hash=hash_token(token),
    )
    session.add(user)
    session.flush()
    return user, token


def rotate_token(user: User) -> str:
    """Replace a user's token; the old one stops working (caller must commit)."""
    token = new_token()
    user.token_hash = hash_token(token)
    return token


def user_dict(user: User) -> dict:
    return {
        "id": user.id, "email": user.email, "first_name": user.first_name,
        "last_name": user.last_name, "role": user.role,
    }


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------


def current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    session: Session = Depends(db_session),
) -> User:
    user = user_for_token(session, credentials.credentials) if credentials else None
    if user is None:
        raise HTTPException(401, "Unauthorized")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    if user.role != "admin":
        log.warning("Forbidden: %s (%s) attempted an admin action", user.email, user.role)
        raise HTTPException(403, "Forbidden")
    return user
