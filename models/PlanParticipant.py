import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base


class ParticipantStatus(enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ParticipantRole(enum.Enum):
    CREATOR = "creator"
    ADMIN = "admin"
    PARTICIPANT = "participant"


MANAGER_ROLES = {ParticipantRole.CREATOR.value, ParticipantRole.ADMIN.value}


class PlanParticipant(Base):
    __tablename__ = "plan_participants"
    __table_args__ = (
        UniqueConstraint("plan_id", "user_id", name="uq_plan_participant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    plan_id = Column(Integer, ForeignKey("plans.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), default=ParticipantStatus.PENDING.value, nullable=False)
    role = Column(String(20), default=ParticipantRole.PARTICIPANT.value, nullable=False)
    joined_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    plan = relationship("Plan", back_populates="participants")
    user = relationship("User", lazy="joined")

    @property
    def can_manage(self) -> bool:
        return self.role in MANAGER_ROLES
