from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_current_user
from models.User import User
from schemas import ChatRead, ChatResponse, MessageCreate, MessageResponse, UnreadCountResponse
from services import chat_service

router = APIRouter(prefix="/chats/plans/{plan_id}", tags=["Chats"])


@router.get("", response_model=ChatResponse)
def get_chat(plan_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"chat": ChatRead.model_validate(chat_service.get_chat(db, user, plan_id))}


@router.post("/messages", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
def send_message(
    plan_id: int,
    payload: MessageCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    chat = chat_service.send_message(db, user, plan_id, payload.content, payload.type)
    return {"chat": ChatRead.model_validate(chat)}


@router.put("/messages/read", response_model=MessageResponse)
def mark_messages_as_read(plan_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    chat_service.mark_messages_as_read(db, user, plan_id)
    return {"message": "Messages marked as read"}


@router.get("/messages/unread", response_model=UnreadCountResponse)
def get_unread_count(plan_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"unread_count": chat_service.get_unread_count(db, user, plan_id)}
