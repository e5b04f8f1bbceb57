from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from dependencies import get_current_user, get_optional_user, get_storage
from models.Plan import Plan
from models.User import User
from schemas import (
    ParticipantStatusUpdate,
    PhotoUrlsResponse,
    PlanCreate,
    PlanListResponse,
    PlanRead,
    PlanResponse,
    PlanUpdate,
)
from services import plan_service, upload_service
from services.storage import LazyStorage
from utils.geocoding_helpers import resolve_location

router = APIRouter(prefix="/plans", tags=["Plans"])


def _plan_response(plan: Plan) -> dict:
    return {"plan": PlanRead.model_validate(plan)}


@router.post("", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    payload: PlanCreate,
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    location = plan_service.normalize_location(payload.location)
    if settings.geocoding_enabled:
        location = await resolve_location(location)
    plan = await run_in_threadpool(plan_service.create_plan, db, user, payload, location)
    return await run_in_threadpool(_plan_response, plan)


@router.post("/photos", response_model=PhotoUrlsResponse, status_code=status.HTTP_201_CREATED)
async def upload_plan_photos(
    photos: List[UploadFile] = File(...),
    user: User = Depends(get_current_user),
    storage: LazyStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Upload plan images before creating the plan; returns their URLs."""
    files = [upload_service.UploadedFile(f.filename, f.content_type, await f.read()) for f in photos]
    urls = await run_in_threadpool(upload_service.upload_plan_photos, storage, settings, user, files)
    return {"photo_urls": urls}


@router.get("", response_model=PlanListResponse)
def list_plans(
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    scope: Optional[Literal["my-plans", "participating"]] = Query(None, alias="filter"),
    type: Optional[Literal["created", "joined"]] = None,
    near: Optional[str] = Query(None, description="<lat>,<lng>"),
    radius_km: float = Query(plan_service.DEFAULT_RADIUS_KM, gt=0),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    plans = plan_service.get_plans(
        db,
        user,
        status=status,
        category=category,
        search=search,
        scope=scope or type,
        near=near,
        radius_km=radius_km,
    )
    return {"plans": [PlanRead.model_validate(p) for p in plans]}


@router.get("/{plan_id}", response_model=PlanResponse)
def get_plan(plan_id: int, user: Optional[User] = Depends(get_optional_user), db: Session = Depends(get_db)):
    return _plan_response(plan_service.get_plan(db, user, plan_id))


@router.put("/{plan_id}", response_model=PlanResponse)
def update_plan(
    plan_id: int,
    payload: PlanUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _plan_response(plan_service.update_plan(db, user, plan_id, payload))


@router.post("/{plan_id}/join", response_model=PlanResponse)
def join_plan(plan_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _plan_response(plan_service.join_plan(db, user, plan_id))


@router.post("/{plan_id}/leave", response_model=PlanResponse)
def leave_plan(plan_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _plan_response(plan_service.leave_plan(db, user, plan_id))


@router.put("/{plan_id}/participants/{participant_id}", response_model=PlanResponse)
def update_participant_status(
    plan_id: int,
    participant_id: int,
    payload: ParticipantStatusUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    plan = plan_service.update_participant_status(db, user, plan_id, participant_id, payload.status)
    return _plan_response(plan)


@router.delete("/{plan_id}/participants/{participant_id}", response_model=PlanResponse)
def remove_participant(
    plan_id: int,
    participant_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _plan_response(plan_service.remove_participant(db, user, plan_id, participant_id))
