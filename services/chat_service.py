"""
Group chat attached to each plan: message sending and read receipts.
"""
from sqlalchemy.orm import Session

from models.Chat import Chat
from models.ChatMessage import ChatMessage
from models.User import User
from services.fcm_service import notify_users
from utils.errors import ChatError, ErrorKind
from utils.logger import get_logger

logger = get_logger("chats")


def get_chat_for_participant(db: Session, user: User, plan_id: int) -> Chat:
    chat = db.query(Chat).filter(Chat.plan_id == plan_id).first()
    if not chat:
        raise ChatError(ErrorKind.NOT_FOUND, "Chat not found")
    if not chat.has_participant(user.id):
        raise ChatError(ErrorKind.INVALID, "You do not have access to this chat")
    return chat


def get_chat(db: Session, user: User, plan_id: int) -> Chat:
    return get_chat_for_participant(db, user, plan_id)


def send_message(db: Session, user: User, plan_id: int, content: str, message_type: str = "text") -> Chat:
    chat = get_chat_for_participant(db, user, plan_id)

    message = ChatMessage(sender_id=user.id, content=content, type=message_type)
    # the sender has already read their own message
    message.read_by.append(user)
    chat.messages.append(message)
    db.commit()
    db.refresh(chat)
    logger.info("User %s sent a %s message to plan %s", user.id, message_type, plan_id)

    preview = content if message_type == "text" else f"[{message_type}]"
    notify_users(
        [u for u in chat.participants if u.id != user.id],
        "chat_messages",
        chat.plan.title,
        f"{user.name}: {preview[:100]}",
        {"type": "chat_message", "plan_id": plan_id, "message_id": message.id},
    )
    return chat


def mark_messages_as_read(db: Session, user: User, plan_id: int) -> int:
    """Add the caller to every message's read-by set; returns how many changed."""
    chat = get_chat_for_participant(db, user, plan_id)

    marked = 0
    for message in chat.messages:
        if not message.is_read_by(user.id):
            message.read_by.append(user)
            marked += 1
    if marked:
        db.commit()
    return marked


def get_unread_count(db: Session, user: User, plan_id: int) -> int:
    chat = get_chat_for_participant(db, user, plan_id)
    return sum(1 for message in chat.messages if not message.is_read_by(user.id))
