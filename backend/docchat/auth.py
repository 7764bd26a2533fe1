import hashlib
import logging
import secrets
from typing import Optional

from fastapi import Header, Request
from sqlalchemy.engine import Engine
from sqlmodel import select

from .db import get_session
from .errors import Conflict, Unauthorized
from .models import AuthToken, User

logger = logging.getLogger(__name__)


def hash_password(p: str) -> str:
    return hashlib.sha256(p.encode()).hexdigest()


def verify_password(p: str, h: str) -> bool:
    return secrets.compare_digest(hash_password(p), h)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(engine: Engine, name: str, email: str, password: str) -> User:
    email = normalize_email(email)
    with get_session(engine) as session:
        existing = session.exec(select(User).where(User.email == email)).first()
        if existing:
            raise Conflict("Email already registered")
        user = User(name=name, email=email, password_hash=hash_password(password))
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


def authenticate_user(engine: Engine, email: str, password: str) -> User:
    with get_session(engine) as session:
        user = session.exec(select(User).where(User.email == normalize_email(email))).first()
        if not user or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", email)
            raise Unauthorized("Invalid email or password")
        return user


def issue_token(engine: Engine, user: User) -> str:
    """Return the user's bearer token, creating one on first login."""
    with get_session(engine) as session:
        token = session.exec(select(AuthToken).where(AuthToken.user_id == user.id)).first()
        if token is None:
            token = AuthToken(token=secrets.token_hex(20), user_id=user.id)
            session.add(token)
            session.commit()
        return token.token


def revoke_token(engine: Engine, user: User) -> None:
    with get_session(engine) as session:
        token = session.exec(select(AuthToken).where(AuthToken.user_id == user.id)).first()
        if token:
            session.delete(token)
            session.commit()


def get_current_user(request: Request, authorization: Optional[str] = Header(None)) -> User:
    """FastAPI dependency resolving ``Authorization: Bearer <token>`` to a User."""
    if not authorization:
        raise Unauthorized()
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credentials.strip():
        raise Unauthorized("Invalid authorization header")

    with get_session(request.app.state.engine) as session:
        token = session.exec(select(AuthToken).where(AuthToken.token == credentials.strip())).first()
        user = session.get(User, token.user_id) if token else None
    if user is None:
        raise Unauthorized("Invalid or expired token")
    return user
