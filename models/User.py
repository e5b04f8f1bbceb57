import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Table, JSON, func
from sqlalchemy import event
from sqlalchemy.orm import relationship, validates
from database import Base


class UserRole(enum.Enum):
    USER = "user"
    ADMIN = "admin"


def default_settings() -> dict:
    return {
        "notifications": {
            "enabled": True,
            "chat_messages": True,
            "plan_updates": True,
            "reminders": True,
        },
        "privacy": {
            "share_location": True,
            "public_profile": True,
        },
    }


# One row per direction; the service layer writes both rows in one transaction
friendships = Table(
    "friendships",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("friend_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)

user_joined_plans = Table(
    "user_joined_plans",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("plan_id", Integer, ForeignKey("plans.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # null for OAuth-only accounts
    google_id = Column(String(128), unique=True, index=True, nullable=True)
    facebook_id = Column(String(128), unique=True, index=True, nullable=True)
    name = Column(String(100), nullable=False)
    avatar = Column(String(500), nullable=True)
    photos = Column(JSON, default=list, nullable=False)
    bio = Column(Text, nullable=True)
    interests = Column(JSON, default=list, nullable=False)
    availability = Column(JSON, nullable=True)  # {"days": [...], "time_ranges": [...]}
    settings = Column(JSON, default=default_settings, nullable=False)
    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    fcm_token = Column(String(500), nullable=True)  # Firebase Cloud Messaging token
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    friends = relationship(
        "User",
        secondary=friendships,
        primaryjoin=id == friendships.c.user_id,
        secondaryjoin=id == friendships.c.friend_id,
        order_by="User.name",
    )
    plans_created = relationship("Plan", back_populates="creator", order_by="Plan.date_time.desc()")
    plans_joined = relationship("Plan", secondary=user_joined_plans, order_by="Plan.date_time.desc()")

    @validates("email")
    def normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def has_oauth_identity(self) -> bool:
        return bool(self.google_id or self.facebook_id)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def public_profile(self) -> bool:
        privacy = (self.settings or {}).get("privacy", {})
        return privacy.get("public_profile", True)

    def wants_notification(self, kind: str) -> bool:
        notifications = (self.settings or {}).get("notifications", {})
        return bool(notifications.get("enabled", True) and notifications.get(kind, True))

    def is_friend_of(self, other_id: int) -> bool:
        return any(f.id == other_id for f in self.friends)


@event.listens_for(User, "before_insert")
@event.listens_for(User, "before_update")
def require_credentials(mapper, connection, target):
    if not target.password_hash and not target.has_oauth_identity:
        raise ValueError("A password is required unless a Google or Facebook account is linked")
