import enum

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Table, String, func
from sqlalchemy.orm import relationship
from database import Base


class MessageType(enum.Enum):
    TEXT = "text"
    IMAGE = "image"
    LOCATION = "location"


message_reads = Table(
    "message_reads",
    Base.metadata,
    Column("message_id", Integer, ForeignKey("chat_messages.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    type = Column(String(20), default=MessageType.TEXT.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    chat = relationship("Chat", back_populates="messages")
    sender = relationship("User")
    read_by = relationship("User", secondary=message_reads)

    def is_read_by(self, user_id: int) -> bool:
        return any(u.id == user_id for u in self.read_by)
