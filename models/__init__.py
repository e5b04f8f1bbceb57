from models.User import User, UserRole, friendships, user_joined_plans
from models.Plan import Plan, PlanPrivacy, PlanStatus
from models.PlanParticipant import PlanParticipant, ParticipantRole, ParticipantStatus
from models.Chat import Chat, chat_participants
from models.ChatMessage import ChatMessage, MessageType, message_reads

__all__ = [
    "User",
    "UserRole",
    "friendships",
    "user_joined_plans",
    "Plan",
    "PlanPrivacy",
    "PlanStatus",
    "PlanParticipant",
    "ParticipantRole",
    "ParticipantStatus",
    "Chat",
    "chat_participants",
    "ChatMessage",
    "MessageType",
    "message_reads",
]
