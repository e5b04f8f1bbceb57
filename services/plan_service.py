"""
Plan lifecycle: creation (with its companion chat), participant membership
and role-based permission checks.

Participant status moves pending -> accepted | rejected, only by the plan's
creator or an admin. The creator entry is written once at creation and is
never changed, removed or left.
"""
from datetime import date as date_type, datetime, time as time_type, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.Chat import Chat
from models.Plan import Plan, PlanPrivacy, PlanStatus
from models.PlanParticipant import PlanParticipant, ParticipantRole, ParticipantStatus
from models.User import User, friendships
from schemas import LocationIn, PlanCreate, PlanUpdate
from services.fcm_service import notify_users
from utils.errors import ErrorKind, PlanError, UserError
from utils.geocoding_helpers import haversine_distance
from utils.logger import get_logger

logger = get_logger("plans")

COMPANION_CAPS = {
    "Individual": 2,
    "Pareja": 2,
    "Grupo pequeño": 6,
    "Grupo grande": 20,
}
DEFAULT_MAX_PARTICIPANTS = 2
DEFAULT_RADIUS_KM = 10.0

ACCEPTED = ParticipantStatus.ACCEPTED.value
REJECTED = ParticipantStatus.REJECTED.value
PENDING = ParticipantStatus.PENDING.value
CREATOR = ParticipantRole.CREATOR.value


# ---------- pure helpers ----------

def max_participants_for(companion_type: Optional[str], explicit: Union[int, str, None] = None) -> int:
    """Participant cap from the companion type, else the explicit value, else 2."""
    if companion_type and companion_type.strip() in COMPANION_CAPS:
        return COMPANION_CAPS[companion_type.strip()]
    if explicit is not None:
        try:
            value = int(str(explicit).strip())
        except ValueError:
            return DEFAULT_MAX_PARTICIPANTS
        if value > 0:
            return value
    return DEFAULT_MAX_PARTICIPANTS


def _parse_iso(value: str) -> datetime:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def combine_date_time(date_value: str, time_value: str) -> datetime:
    """
    Combine the calendar day of `date_value` with the time of day of
    `time_value`. Both may be ISO datetimes (as sent by the mobile client);
    `time_value` may also be a plain "HH:MM[:SS]". Naive results are UTC.
    """
    try:
        day = date_type.fromisoformat(date_value.strip()[:10])
        try:
            clock = time_type.fromisoformat(time_value.strip())
        except ValueError:
            clock = _parse_iso(time_value).timetz()
    except ValueError:
        raise PlanError(ErrorKind.INVALID, "Invalid date or time", fields=["date", "time"])
    return _as_utc(datetime.combine(day, clock))


def normalize_location(location: Union[str, LocationIn, dict]) -> dict:
    if isinstance(location, str):
        return {"address": location.strip(), "city": None, "latitude": None, "longitude": None}
    if isinstance(location, LocationIn):
        location = location.model_dump()
    return {
        "address": location.get("address"),
        "city": location.get("city"),
        "latitude": location.get("latitude"),
        "longitude": location.get("longitude"),
    }


def parse_near(near: str) -> Tuple[float, float]:
    try:
        lat, lng = (float(part) for part in near.split(","))
    except ValueError:
        raise PlanError(ErrorKind.INVALID, "near must be '<lat>,<lng>'", fields=["near"])
    return lat, lng


def is_visible(plan: Plan, caller: Optional[User]) -> bool:
    if plan.privacy == PlanPrivacy.PUBLIC.value:
        return True
    if caller is None:
        return False
    if plan.creator_id == caller.id or plan.is_participant(caller.id):
        return True
    return plan.privacy == PlanPrivacy.FRIENDS.value and plan.creator.is_friend_of(caller.id)


def visibility_clause(caller: Optional[User]):
    """SQL counterpart of is_visible."""
    if caller is None:
        return Plan.privacy == PlanPrivacy.PUBLIC.value
    participating = select(PlanParticipant.plan_id).where(PlanParticipant.user_id == caller.id)
    befriended_by = select(friendships.c.user_id).where(friendships.c.friend_id == caller.id)
    return or_(
        Plan.privacy == PlanPrivacy.PUBLIC.value,
        Plan.creator_id == caller.id,
        Plan.id.in_(participating),
        and_(Plan.privacy == PlanPrivacy.FRIENDS.value, Plan.creator_id.in_(befriended_by)),
    )


# ---------- lookups ----------

def get_plan_or_404(db: Session, plan_id: int, for_update: bool = False) -> Plan:
    query = db.query(Plan).filter(Plan.id == plan_id)
    if for_update:
        # serializes joins against the participant cap where the database supports it
        query = query.with_for_update(of=Plan)
    plan = query.first()
    if not plan:
        raise PlanError(ErrorKind.NOT_FOUND, "Plan not found")
    return plan


def get_plan(db: Session, caller: Optional[User], plan_id: int) -> Plan:
    plan = get_plan_or_404(db, plan_id)
    if not is_visible(plan, caller):
        # same answer as a missing plan so private plans are not disclosed
        raise PlanError(ErrorKind.NOT_FOUND, "Plan not found")
    return plan


def get_plans(
    db: Session,
    caller: Optional[User],
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    scope: Optional[str] = None,
    near: Optional[str] = None,
    radius_km: float = DEFAULT_RADIUS_KM,
) -> List[Plan]:
    """
    List the plans visible to `caller`.

    `scope` is "my-plans" (created by the caller) or "participating"
    (accepted participant); both are ignored for anonymous callers.
    """
    query = db.query(Plan).filter(visibility_clause(caller))

    if status:
        query = query.filter(Plan.status == status)
    if category:
        query = query.filter(Plan.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Plan.title.ilike(pattern), Plan.description.ilike(pattern)))

    if caller is not None:
        if scope in ("my-plans", "created"):
            query = query.filter(Plan.creator_id == caller.id)
        elif scope in ("participating", "joined"):
            accepted = select(PlanParticipant.plan_id).where(
                PlanParticipant.user_id == caller.id,
                PlanParticipant.status == ACCEPTED,
            )
            query = query.filter(Plan.id.in_(accepted))

    plans = query.order_by(Plan.date_time.desc()).all()

    if near:
        lat, lng = parse_near(near)
        limit_m = radius_km * 1000
        plans = [
            p for p in plans
            if p.latitude is not None and p.longitude is not None
            and haversine_distance(lat, lng, p.latitude, p.longitude) <= limit_m
        ]
    return plans


def get_user_plans(
    db: Session,
    caller: Optional[User],
    user_id: int,
    status: Optional[str] = None,
    plan_type: Optional[str] = None,
) -> List[Plan]:
    if not db.get(User, user_id):
        raise UserError(ErrorKind.NOT_FOUND, "User not found")

    accepted = select(PlanParticipant.plan_id).where(
        PlanParticipant.user_id == user_id,
        PlanParticipant.status == ACCEPTED,
    )
    query = db.query(Plan).filter(visibility_clause(caller))
    if plan_type == "created":
        query = query.filter(Plan.creator_id == user_id)
    elif plan_type == "joined":
        query = query.filter(Plan.id.in_(accepted))
    else:
        query = query.filter(or_(Plan.creator_id == user_id, Plan.id.in_(accepted)))
    if status:
        query = query.filter(Plan.status == status)
    return query.order_by(Plan.date_time.desc()).all()


# ---------- mutations ----------

def create_plan(db: Session, user: User, payload: PlanCreate, location: Optional[dict] = None) -> Plan:
    date_time = combine_date_time(payload.date, payload.time)
    if date_time < datetime.now(timezone.utc):
        raise PlanError(ErrorKind.INVALID, "The plan date must be in the future", fields=["date", "time"])

    media = [{"type": "image", "url": url.strip()} for url in payload.images if url and url.strip()]
    if not media:
        raise PlanError(ErrorKind.INVALID, "At least one image is required", fields=["images"])

    if location is None:
        location = normalize_location(payload.location)

    plan = Plan(
        creator_id=user.id,
        title=payload.title,
        description=payload.description,
        category=payload.category,
        address=location.get("address"),
        city=location.get("city"),
        latitude=location.get("latitude"),
        longitude=location.get("longitude"),
        date_time=date_time,
        duration=payload.duration,
        companion_type=payload.companion_type,
        max_participants=max_participants_for(payload.companion_type, payload.max_participants),
        tags=list(payload.tags),
        privacy=payload.privacy or (PlanPrivacy.PUBLIC.value if payload.is_public else PlanPrivacy.PRIVATE.value),
        status=PlanStatus.ACTIVE.value,
        media=media,
    )
    plan.participants.append(PlanParticipant(user_id=user.id, status=ACCEPTED, role=CREATOR))
    plan.chat = Chat(participants=[user])

    # plan, creator entry and chat are committed together
    db.add(plan)
    db.commit()
    db.refresh(plan)
    logger.info("User %s created plan %s (max %s participants)", user.id, plan.id, plan.max_participants)
    return plan


def _require_manager(plan: Plan, actor: User, message: str) -> PlanParticipant:
    requester = plan.participant_for(actor.id)
    if not requester or not requester.can_manage:
        raise PlanError(ErrorKind.FORBIDDEN, message)
    return requester


def _detach(plan: Plan, participant: PlanParticipant) -> None:
    """Remove a participant from the plan, its chat and their joined plans."""
    user = participant.user
    plan.participants.remove(participant)
    if plan.chat and plan.chat.has_participant(user.id):
        plan.chat.participants.remove(user)
    if plan in user.plans_joined:
        user.plans_joined.remove(plan)


def join_plan(db: Session, user: User, plan_id: int) -> Plan:
    plan = get_plan_or_404(db, plan_id, for_update=True)

    if plan.status != PlanStatus.ACTIVE.value:
        raise PlanError(ErrorKind.INVALID, "This plan is no longer active")
    if plan.is_participant(user.id):
        raise PlanError(ErrorKind.INVALID, "You are already a participant of this plan")
    if plan.max_participants and plan.active_participant_count >= plan.max_participants:
        raise PlanError(ErrorKind.INVALID, "This plan is full")

    plan.participants.append(PlanParticipant(user_id=user.id, status=PENDING))
    if plan.chat and not plan.chat.has_participant(user.id):
        plan.chat.participants.append(user)
    try:
        db.commit()
    except IntegrityError:
        # a concurrent join by the same user won the unique (plan, user) constraint
        db.rollback()
        raise PlanError(ErrorKind.INVALID, "You are already a participant of this plan")
    db.refresh(plan)
    logger.info("User %s requested to join plan %s", user.id, plan.id)

    managers = [p.user for p in plan.participants if p.can_manage and p.user_id != user.id]
    notify_users(
        managers,
        "plan_updates",
        "New join request",
        f"{user.name} wants to join {plan.title}",
        {"type": "plan_join", "plan_id": plan.id, "user_id": user.id},
    )
    return plan


def leave_plan(db: Session, user: User, plan_id: int) -> Plan:
    plan = get_plan_or_404(db, plan_id, for_update=True)

    participant = plan.participant_for(user.id)
    if not participant:
        raise PlanError(ErrorKind.INVALID, "You are not a participant of this plan")
    if participant.role == CREATOR:
        raise PlanError(ErrorKind.INVALID, "The creator cannot leave the plan")

    _detach(plan, participant)
    db.commit()
    db.refresh(plan)
    logger.info("User %s left plan %s", user.id, plan.id)
    return plan


def update_participant_status(db: Session, actor: User, plan_id: int, participant_id: int, status: str) -> Plan:
    plan = get_plan_or_404(db, plan_id, for_update=True)
    _require_manager(plan, actor, "You do not have permission to update participants")

    target = plan.participant_for(participant_id)
    if not target:
        raise PlanError(ErrorKind.NOT_FOUND, "Participant not found")
    if target.role == CREATOR:
        raise PlanError(ErrorKind.INVALID, "The creator's participation cannot be changed")
    if (
        target.status == REJECTED and status != REJECTED
        and plan.max_participants and plan.active_participant_count >= plan.max_participants
    ):
        raise PlanError(ErrorKind.INVALID, "This plan is full")

    target.status = status
    user = target.user
    if status == ACCEPTED:
        if plan not in user.plans_joined:
            user.plans_joined.append(plan)
    elif plan in user.plans_joined:
        user.plans_joined.remove(plan)

    # rejected users leave the group chat, anyone else belongs to it
    if plan.chat:
        in_chat = plan.chat.has_participant(user.id)
        if status == REJECTED and in_chat:
            plan.chat.participants.remove(user)
        elif status != REJECTED and not in_chat:
            plan.chat.participants.append(user)

    db.commit()
    db.refresh(plan)
    logger.info("User %s set participant %s of plan %s to %s", actor.id, participant_id, plan.id, status)

    notify_users(
        [user],
        "plan_updates",
        plan.title,
        f"Your request to join was {status}",
        {"type": "participant_status", "plan_id": plan.id, "status": status},
    )
    return plan


def remove_participant(db: Session, actor: User, plan_id: int, participant_id: int) -> Plan:
    plan = get_plan_or_404(db, plan_id, for_update=True)
    _require_manager(plan, actor, "You do not have permission to remove participants")

    target = plan.participant_for(participant_id)
    if not target:
        raise PlanError(ErrorKind.NOT_FOUND, "Participant not found")
    if target.role == CREATOR:
        raise PlanError(ErrorKind.INVALID, "The creator cannot be removed from the plan")

    _detach(plan, target)
    db.commit()
    db.refresh(plan)
    logger.info("User %s removed participant %s from plan %s", actor.id, participant_id, plan.id)
    return plan


def update_plan(db: Session, actor: User, plan_id: int, updates: PlanUpdate) -> Plan:
    plan = get_plan_or_404(db, plan_id)
    _require_manager(plan, actor, "You do not have permission to edit this plan")

    data = updates.model_dump(exclude_unset=True)
    for restricted in ("creator", "creator_id", "participants"):
        data.pop(restricted, None)
    # explicit nulls only make sense for the optional cap
    data = {k: v for k, v in data.items() if v is not None or k == "max_participants"}

    location = data.pop("location", None)
    if location:
        for key in ("address", "city", "latitude", "longitude"):
            if key in location:
                setattr(plan, key, location[key])

    if "date_time" in data:
        data["date_time"] = _as_utc(data["date_time"])
        if data["date_time"] < datetime.now(timezone.utc):
            raise PlanError(ErrorKind.INVALID, "The plan date must be in the future", fields=["date_time"])
    if data.get("max_participants") is not None and data["max_participants"] < plan.active_participant_count:
        raise PlanError(
            ErrorKind.INVALID,
            "max_participants cannot be lower than the current number of participants",
            fields=["max_participants"],
        )
    if "media" in data and not data["media"]:
        raise PlanError(ErrorKind.INVALID, "At least one image is required", fields=["media"])

    for key, value in data.items():
        setattr(plan, key, value)

    db.commit()
    db.refresh(plan)
    logger.info("User %s updated plan %s (%s)", actor.id, plan.id, ", ".join(sorted(data)) or "location")

    notify_users(
        [p.user for p in plan.participants if p.user_id != actor.id and p.status == ACCEPTED],
        "plan_updates",
        "Plan updated",
        f"{plan.title} has been updated",
        {"type": "plan_updated", "plan_id": plan.id},
    )
    return plan
