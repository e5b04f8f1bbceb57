"""
Registration, login and OAuth account resolution.

Every flow ends with the same provider-agnostic bearer token.
"""
from typing import Optional, Tuple

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import get_settings
from models.User import User, default_settings
from utils.errors import AuthError, ErrorKind, UserError
from utils.logger import get_logger
from utils.security import create_access_token, get_password_hash, verify_password

logger = get_logger("auth")

OAUTH_PROVIDERS = {"google": "google_id", "facebook": "facebook_id"}


def register(db: Session, email: str, password: str, name: str) -> Tuple[str, User]:
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise UserError(ErrorKind.DUPLICATE, "Email already registered", fields=["email"])

    user = User(
        email=email,
        password_hash=get_password_hash(password),
        name=name.strip(),
        settings=default_settings(),
        photos=[],
        interests=[],
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # concurrent registration with the same email
        db.rollback()
        raise UserError(ErrorKind.DUPLICATE, "Email already registered", fields=["email"])
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return create_access_token(user.id), user


def login(db: Session, email: str, password: str) -> Tuple[str, User]:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    # same message for unknown email and wrong password
    if not user or not verify_password(password, user.password_hash):
        raise AuthError(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")
    return create_access_token(user.id), user


def oauth_login(db: Session, provider: str, profile: dict) -> Tuple[str, User]:
    """
    Exchange a provider-verified profile for a user.

    `profile` carries `id`, `email`, `name` and optionally `avatar`. Lookup
    order: provider id, then an existing account with the same email (which
    gets the provider id linked), else a new password-less user.
    """
    column = OAUTH_PROVIDERS.get(provider)
    if column is None:
        raise AuthError(ErrorKind.INVALID, f"Unsupported provider: {provider}")
    provider_id = str(profile.get("id") or "")
    if not provider_id:
        raise AuthError(ErrorKind.UNAUTHENTICATED, f"Could not authenticate with {provider}")

    user = db.query(User).filter(getattr(User, column) == provider_id).first()
    if user is None:
        email = (profile.get("email") or "").strip().lower()
        if not email:
            raise AuthError(
                ErrorKind.INVALID,
                f"The {provider} account did not share an email address",
                fields=["email"],
            )
        user = db.query(User).filter(User.email == email).first()
        if user is not None:
            setattr(user, column, provider_id)
            if not user.avatar and profile.get("avatar"):
                user.avatar = profile["avatar"]
        else:
            user = User(
                email=email,
                name=profile.get("name") or email.split("@")[0],
                avatar=profile.get("avatar"),
                settings=default_settings(),
                photos=[],
                interests=[],
            )
            setattr(user, column, provider_id)
            db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("OAuth login via %s resolved to user %s", provider, user.id)

    return create_access_token(user.id), user


def fetch_google_profile(access_token: str) -> dict:
    settings = get_settings()
    try:
        resp = httpx.get(settings.google_tokeninfo_url, params={"access_token": access_token}, timeout=10.0)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as exc:
        logger.warning("Google token verification failed: %s", exc)
        raise AuthError(ErrorKind.UNAUTHENTICATED, "Could not authenticate with Google")
    return {
        "id": data.get("sub") or data.get("user_id"),
        "email": data.get("email"),
        "name": data.get("name"),
        "avatar": data.get("picture"),
    }


def fetch_facebook_profile(access_token: str) -> dict:
    settings = get_settings()
    try:
        resp = httpx.get(
            settings.facebook_graph_url,
            params={"fields": "id,name,email,picture", "access_token": access_token},
            timeout=10.0,
        )
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as exc:
        logger.warning("Facebook token verification failed: %s", exc)
        raise AuthError(ErrorKind.UNAUTHENTICATED, "Could not authenticate with Facebook")
    picture: Optional[str] = (data.get("picture") or {}).get("data", {}).get("url")
    return {
        "id": data.get("id"),
        "email": data.get("email"),
        "name": data.get("name"),
        "avatar": picture,
    }


PROFILE_FETCHERS = {
    "google": fetch_google_profile,
    "facebook": fetch_facebook_profile,
}
