"""
Profile, settings and friend management.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from models.User import User
from schemas import PlanSummary, UserProfileRead, UserSettings, UserUpdate
from services.plan_service import is_visible
from utils.errors import ErrorKind, UserError
from utils.logger import get_logger

logger = get_logger("users")

# never writable through the profile endpoint
RESTRICTED_PROFILE_FIELDS = ("password", "password_hash", "email", "google_id", "facebook_id", "role")


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise UserError(ErrorKind.NOT_FOUND, "User not found")
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.id).all()


def update_profile(db: Session, user: User, updates: UserUpdate) -> User:
    data = updates.model_dump(exclude_unset=True)
    for field in RESTRICTED_PROFILE_FIELDS:
        data.pop(field, None)
    if data.get("name") is None:
        data.pop("name", None)

    for key, value in data.items():
        setattr(user, key, value)
    db.commit()
    db.refresh(user)
    return user


def update_settings(db: Session, user: User, settings: UserSettings) -> User:
    user.settings = settings.model_dump()
    db.commit()
    db.refresh(user)
    return user


def update_fcm_token(db: Session, user: User, fcm_token: Optional[str]) -> User:
    user.fcm_token = fcm_token or None
    db.commit()
    db.refresh(user)
    return user


def get_user_profile(db: Session, caller: Optional[User], user_id: int) -> UserProfileRead:
    user = get_user_or_404(db, user_id)

    is_self = caller is not None and caller.id == user.id
    is_friend = caller is not None and user.is_friend_of(caller.id)
    if not user.public_profile and not is_self and not is_friend:
        raise UserError(ErrorKind.FORBIDDEN, "Private profile")

    profile = UserProfileRead.model_validate(user)
    return profile.model_copy(update={
        "plans_created": [PlanSummary.model_validate(p) for p in user.plans_created if is_visible(p, caller)],
        "plans_joined": [PlanSummary.model_validate(p) for p in user.plans_joined if is_visible(p, caller)],
        "friends_count": len(user.friends),
        "is_friend": is_friend if caller is not None and not is_self else None,
    })


def add_friend(db: Session, user: User, friend_id: int) -> User:
    if user.id == friend_id:
        raise UserError(ErrorKind.INVALID, "You cannot add yourself as a friend")
    friend = get_user_or_404(db, friend_id)
    if user.is_friend_of(friend.id):
        raise UserError(ErrorKind.DUPLICATE, "You are already friends")

    # both directions in one transaction
    user.friends.append(friend)
    if not friend.is_friend_of(user.id):
        friend.friends.append(user)
    db.commit()
    logger.info("Users %s and %s are now friends", user.id, friend.id)
    return friend


def remove_friend(db: Session, user: User, friend_id: int) -> None:
    friend = get_user_or_404(db, friend_id)
    if not user.is_friend_of(friend.id) and not friend.is_friend_of(user.id):
        raise UserError(ErrorKind.NOT_FOUND, "You are not friends")

    if friend in user.friends:
        user.friends.remove(friend)
    if user in friend.friends:
        friend.friends.remove(user)
    db.commit()
    logger.info("Users %s and %s are no longer friends", user.id, friend.id)
