"""FastAPI dependencies: DB session and current user from JWT.

JWT is accepted from:
1. Authorization header (for API clients)
2. httpOnly cookie (for the web till)
"""
from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from pharmacy_pos.core.config import settings
from pharmacy_pos.core.exceptions import BusinessError
from pharmacy_pos.core.security import decode_access_token
from pharmacy_pos.db.session import SessionLocal
from pharmacy_pos.models.user import User

security = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> int:
    """Header takes precedence over cookie."""
    token = None
    if credentials:
        token = credentials.credentials
    elif settings.TOKEN_COOKIE_NAME in request.cookies:
        token = request.cookies[settings.TOKEN_COOKIE_NAME]

    if not token:
        raise BusinessError.unauthorized("missing token")

    sub = decode_access_token(token)
    if not sub:
        raise BusinessError.unauthorized("invalid or expired token")

    try:
        return int(sub)
    except ValueError:
        raise BusinessError.unauthorized(f"non-numeric subject {sub!r}")


def get_current_user(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
) -> User:
    """Load current user from DB."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise BusinessError.unauthorized(f"unknown user_id={user_id}")
    return user
