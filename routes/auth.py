from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_current_user
from models.User import User
from schemas import AuthResponse, LoginRequest, OAuthRequest, RegisterRequest, UserRead, UserResponse
from services import auth_service

router = APIRouter(prefix="/auth", tags=["Auth"])


def _auth_response(token: str, user: User) -> dict:
    return {"token": token, "user": UserRead.model_validate(user)}


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    token, user = auth_service.register(db, payload.email, payload.password, payload.name)
    return _auth_response(token, user)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    token, user = auth_service.login(db, payload.email, payload.password)
    return _auth_response(token, user)


@router.post("/google", response_model=AuthResponse)
def google_login(payload: OAuthRequest, db: Session = Depends(get_db)):
    """Sign in with a Google access token obtained by the client."""
    profile = auth_service.PROFILE_FETCHERS["google"](payload.access_token)
    token, user = auth_service.oauth_login(db, "google", profile)
    return _auth_response(token, user)


@router.post("/facebook", response_model=AuthResponse)
def facebook_login(payload: OAuthRequest, db: Session = Depends(get_db)):
    """Sign in with a Facebook access token obtained by the client."""
    profile = auth_service.PROFILE_FETCHERS["facebook"](payload.access_token)
    token, user = auth_service.oauth_login(db, "facebook", profile)
    return _auth_response(token, user)


@router.get("/me", response_model=UserResponse)
@router.get("/profile", response_model=UserResponse, include_in_schema=False)
def me(user: User = Depends(get_current_user)):
    return {"user": UserRead.model_validate(user)}
