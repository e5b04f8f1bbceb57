"""
Dependency wiring for the FastAPI app: storage handle and caller identity.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import get_settings
from database import get_db
from models.User import User
from services.storage import LazyStorage, build_storage_client
from utils.errors import AuthError, ErrorKind
from utils.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)

# Built once at import; the underlying client is only created on first use.
_storage = LazyStorage(lambda: build_storage_client(get_settings()))


def get_storage() -> LazyStorage:
    """Return the process-wide storage handle."""
    return _storage


def resolve_user(db: Session, token: str) -> User:
    user_id = decode_access_token(token)
    user = db.get(User, user_id)
    if not user:
        raise AuthError(ErrorKind.UNAUTHENTICATED, "User not found")
    return user


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if creds is None or not creds.credentials:
        raise AuthError(ErrorKind.UNAUTHENTICATED, "Token not provided")
    return resolve_user(db, creds.credentials)


def get_optional_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Same as get_current_user, but a missing or bad token means anonymous."""
    if creds is None or not creds.credentials:
        return None
    try:
        return resolve_user(db, creds.credentials)
    except AuthError:
        return None


def require_role(*roles: str):
    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise AuthError(ErrorKind.FORBIDDEN, "Insufficient permissions")
        return user

    return checker
