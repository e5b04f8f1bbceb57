# schemas.py (Pydantic v2)
from datetime import datetime
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import AliasGenerator, BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

ParticipantStatusValue = Literal["pending", "accepted", "rejected"]
PrivacyValue = Literal["public", "private", "friends"]
PlanStatusValue = Literal["active", "cancelled", "completed"]
MessageTypeValue = Literal["text", "image", "location"]


class CamelModel(BaseModel):
    """Request bodies accept both camelCase (mobile client) and snake_case keys.

    Only the validation side is aliased, responses stay snake_case.
    """
    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
    )


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------- Users ----------
class NotificationSettings(CamelModel):
    enabled: bool = True
    chat_messages: bool = True
    plan_updates: bool = True
    reminders: bool = True

class PrivacySettings(CamelModel):
    share_location: bool = True
    public_profile: bool = True

class UserSettings(CamelModel):
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    privacy: PrivacySettings = Field(default_factory=PrivacySettings)

class Availability(CamelModel):
    days: List[str] = []
    time_ranges: List[str] = []

class UserPublic(ORMModel):
    """Minimal user info embedded in plans and chats"""
    id: int
    name: str
    avatar: Optional[str] = None

class UserRead(ORMModel):
    id: int
    email: str
    name: str
    avatar: Optional[str] = None
    photos: List[str] = []
    bio: Optional[str] = None
    interests: List[str] = []
    availability: Optional[Availability] = None
    settings: UserSettings
    role: str
    created_at: datetime

class PlanSummary(ORMModel):
    id: int
    title: str
    description: str
    date_time: datetime
    status: str

class UserProfileRead(ORMModel):
    """Profile as seen by other users (no email, no OAuth ids)"""
    id: int
    name: str
    avatar: Optional[str] = None
    photos: List[str] = []
    bio: Optional[str] = None
    interests: List[str] = []
    availability: Optional[Availability] = None
    plans_created: List[PlanSummary] = []
    plans_joined: List[PlanSummary] = []
    friends_count: int = 0
    is_friend: Optional[bool] = None

class UserUpdate(CamelModel):
    """Partial update for the caller's profile"""
    name: Optional[NonBlankStr] = None
    bio: Optional[str] = None
    interests: Optional[List[str]] = None
    availability: Optional[Availability] = None

class SettingsUpdate(CamelModel):
    settings: UserSettings

class FCMTokenUpdate(CamelModel):
    fcm_token: Optional[str] = None

class PhotoDelete(BaseModel):
    url: NonBlankStr

class UserResponse(BaseModel):
    user: UserRead

class UserListResponse(BaseModel):
    users: List[UserRead]

class ProfileResponse(BaseModel):
    user: UserProfileRead

class FriendsResponse(BaseModel):
    friends: List[UserPublic]

class SettingsResponse(BaseModel):
    settings: UserSettings

class PhotosResponse(BaseModel):
    photos: List[str]

class AvatarResponse(BaseModel):
    avatar: str

class PhotoUrlsResponse(BaseModel):
    photo_urls: List[str]

class MessageResponse(BaseModel):
    message: str


# ---------- Auth ----------
class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: NonBlankStr

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class OAuthRequest(CamelModel):
    access_token: NonBlankStr

class AuthResponse(BaseModel):
    token: str
    user: UserRead


# ---------- Plans ----------
class LocationIn(CamelModel):
    address: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

class MediaItem(BaseModel):
    type: Literal["image", "video"] = "image"
    url: NonBlankStr

class PlanCreate(CamelModel):
    title: NonBlankStr
    description: NonBlankStr
    category: NonBlankStr
    # date and time arrive separately from the client and are combined server-side
    date: NonBlankStr
    time: NonBlankStr
    location: Union[NonBlankStr, LocationIn]
    companion_type: Optional[str] = None
    max_participants: Optional[Union[int, str]] = None
    is_public: bool = True
    privacy: Optional[PrivacyValue] = None
    images: List[str] = []
    tags: List[str] = []
    duration: int = Field(60, gt=0)

class PlanUpdate(CamelModel):
    """Partial update; creator and participants are never writable here"""
    title: Optional[NonBlankStr] = None
    description: Optional[NonBlankStr] = None
    category: Optional[NonBlankStr] = None
    location: Optional[LocationIn] = None
    date_time: Optional[datetime] = None
    duration: Optional[int] = Field(None, gt=0)
    max_participants: Optional[int] = Field(None, gt=0)
    tags: Optional[List[str]] = None
    privacy: Optional[PrivacyValue] = None
    status: Optional[PlanStatusValue] = None
    media: Optional[List[MediaItem]] = None

class ParticipantStatusUpdate(BaseModel):
    status: ParticipantStatusValue

class ParticipantRead(ORMModel):
    user_id: int
    user: UserPublic
    status: str
    role: str
    joined_at: datetime

class PlanRead(ORMModel):
    id: int
    title: str
    description: str
    category: str
    creator_id: int
    creator: UserPublic
    address: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    date_time: datetime
    duration: int
    max_participants: Optional[int] = None
    companion_type: Optional[str] = None
    tags: List[str] = []
    privacy: str
    status: str
    media: List[MediaItem] = []
    participants: List[ParticipantRead] = []
    chat_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

class PlanResponse(BaseModel):
    plan: PlanRead

class PlanListResponse(BaseModel):
    plans: List[PlanRead]


# ---------- Chats ----------
class MessageCreate(BaseModel):
    content: NonBlankStr
    type: MessageTypeValue = "text"

class MessageRead(ORMModel):
    id: int
    sender_id: int
    sender: UserPublic
    content: str
    type: str
    read_by: List[int] = []
    created_at: datetime

    @field_validator("read_by", mode="before")
    @classmethod
    def _reader_ids(cls, value: Any):
        return [getattr(v, "id", v) for v in value or []]

class ChatRead(ORMModel):
    id: int
    plan_id: int
    participants: List[UserPublic] = []
    messages: List[MessageRead] = []
    last_message: Optional[MessageRead] = None
    created_at: datetime
    updated_at: datetime

class ChatResponse(BaseModel):
    chat: ChatRead

class UnreadCountResponse(BaseModel):
    unread_count: int
