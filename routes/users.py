from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from dependencies import get_current_user, get_optional_user, get_storage, require_role
from models.User import User
from schemas import (
    AvatarResponse,
    FCMTokenUpdate,
    FriendsResponse,
    MessageResponse,
    PhotoDelete,
    PhotosResponse,
    PlanListResponse,
    PlanRead,
    ProfileResponse,
    SettingsResponse,
    SettingsUpdate,
    UserListResponse,
    UserPublic,
    UserRead,
    UserResponse,
    UserUpdate,
)
from services import plan_service, upload_service, user_service
from services.storage import LazyStorage

router = APIRouter(prefix="/user", tags=["Users"])
admin_router = APIRouter(prefix="/admin", tags=["Admin"])

PlanType = Optional[Literal["created", "joined"]]


@router.put("/profile", response_model=UserResponse)
def update_profile(payload: UserUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Update the caller's profile. Email, password and linked OAuth accounts
    cannot be changed here.
    """
    user = user_service.update_profile(db, user, payload)
    return {"user": UserRead.model_validate(user)}


@router.put("/settings", response_model=SettingsResponse)
def update_settings(payload: SettingsUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user = user_service.update_settings(db, user, payload.settings)
    return {"settings": user.settings}


@router.put("/fcm-token", response_model=MessageResponse)
def update_fcm_token(payload: FCMTokenUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Store the device token used for push notifications"""
    user_service.update_fcm_token(db, user, payload.fcm_token)
    return {"message": "FCM token updated"}


@router.get("/plans", response_model=PlanListResponse)
def get_my_plans(
    status: Optional[str] = None,
    type: PlanType = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plans = plan_service.get_user_plans(db, user, user.id, status=status, plan_type=type)
    return {"plans": [PlanRead.model_validate(p) for p in plans]}


@router.get("/friends", response_model=FriendsResponse)
def get_friends(user: User = Depends(get_current_user)):
    return {"friends": [UserPublic.model_validate(f) for f in user.friends]}


@router.post("/friends/{friend_id}", response_model=MessageResponse)
def add_friend(friend_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user_service.add_friend(db, user, friend_id)
    return {"message": "Friend added"}


@router.delete("/friends/{friend_id}", response_model=MessageResponse)
def remove_friend(friend_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    user_service.remove_friend(db, user, friend_id)
    return {"message": "Friend removed"}


@router.post("/avatar", response_model=AvatarResponse)
async def upload_avatar(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    storage: LazyStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    file = upload_service.UploadedFile(image.filename, image.content_type, await image.read())
    # storage and database calls block, keep them off the event loop
    url = await run_in_threadpool(upload_service.upload_avatar, db, storage, settings, user, file)
    return {"avatar": url}


@router.post("/photos", response_model=PhotosResponse, status_code=status.HTTP_201_CREATED)
async def upload_photos(
    photos: List[UploadFile] = File(...),
    user: User = Depends(get_current_user),
    storage: LazyStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    files = [upload_service.UploadedFile(f.filename, f.content_type, await f.read()) for f in photos]
    await run_in_threadpool(upload_service.upload_photos, db, storage, settings, user, files)
    return {"photos": user.photos}


@router.delete("/photos", response_model=PhotosResponse)
def delete_photo(
    payload: PhotoDelete,
    user: User = Depends(get_current_user),
    storage: LazyStorage = Depends(get_storage),
    db: Session = Depends(get_db),
):
    return {"photos": upload_service.delete_photo(db, storage, user, payload.url)}


@router.get("/{user_id}", response_model=ProfileResponse)
def get_user_profile(user_id: int, caller: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    return {"user": user_service.get_user_profile(db, caller, user_id)}


@router.get("/{user_id}/plans", response_model=PlanListResponse)
def get_user_plans(
    user_id: int,
    status: Optional[str] = None,
    type: PlanType = None,
    caller: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    plans = plan_service.get_user_plans(db, caller, user_id, status=status, plan_type=type)
    return {"plans": [PlanRead.model_validate(p) for p in plans]}


@admin_router.get("/users", response_model=UserListResponse)
def list_users(admin: User = Depends(require_role("admin")), db: Session = Depends(get_db)):
    return {"users": [UserRead.model_validate(u) for u in user_service.list_users(db)]}
