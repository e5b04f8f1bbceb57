import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Float, JSON, Index, func
from sqlalchemy.orm import relationship
from database import Base


class PlanPrivacy(enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"
    FRIENDS = "friends"


class PlanStatus(enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Plan(Base):
    __tablename__ = "plans"
    __table_args__ = (
        Index("ix_plans_creator_status", "creator_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(150), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    # Location (human-readable + optional geo point)
    address = Column(String(250), nullable=True)
    city = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    date_time = Column(DateTime(timezone=True), nullable=False, index=True)
    duration = Column(Integer, default=60, nullable=False)  # minutes
    max_participants = Column(Integer, nullable=True)
    companion_type = Column(String(50), nullable=True)
    tags = Column(JSON, default=list, nullable=False)
    privacy = Column(String(20), default=PlanPrivacy.PUBLIC.value, nullable=False)
    status = Column(String(20), default=PlanStatus.ACTIVE.value, nullable=False)
    media = Column(JSON, default=list, nullable=False)  # [{"type": "image", "url": ...}]
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    creator = relationship("User", back_populates="plans_created")
    participants = relationship(
        "PlanParticipant",
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanParticipant.joined_at",
    )
    chat = relationship("Chat", back_populates="plan", uselist=False, cascade="all, delete-orphan")

    @property
    def chat_id(self):
        return self.chat.id if self.chat else None

    def participant_for(self, user_id: int):
        for p in self.participants:
            if p.user_id == user_id:
                return p
        return None

    def is_participant(self, user_id: int) -> bool:
        return self.participant_for(user_id) is not None

    @property
    def active_participant_count(self) -> int:
        return sum(1 for p in self.participants if p.status != "rejected")
