from fastapi import APIRouter, Depends, Request, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from ..database import get_db
from ..schemas.room import RoomResponse, RoomRatingResponse, RoomCreate, RoomUpdate
from ..schemas.review import ReviewResponse
from ..services.booking_engine import BookingEngine
from ..services.catalogue_service import CatalogueService
from ..services.review_aggregator import ReviewAggregator
from ..utils.dependencies import SessionContext, require_admin
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/rooms", tags=["Rooms"])


@router.get("", response_model=List[RoomResponse])
async def list_rooms(
    room_status: Optional[str] = Query(None, alias="status"),
    room_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db)
):
    return CatalogueService(db).list_rooms(status=room_status, room_type=room_type)


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    payload = data.model_dump()
    payload["room_type"] = payload.pop("type")
    return CatalogueService(db).create_room(**payload)


@router.get("/available", response_model=List[RoomResponse])
@limiter.limit(get_rate_limit("search"))
async def available_rooms(
    request: Request,
    check_in: datetime,
    check_out: datetime,
    guests: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    """Rooms free for the whole stay that fit the party"""
    return BookingEngine(db).find_available_rooms(check_in, check_out, guests)


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: str, db: Session = Depends(get_db)):
    return CatalogueService(db).get_room(room_id)


@router.put("/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: str,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    return CatalogueService(db).update_room(room_id, data.model_dump(exclude_unset=True))


@router.get("/{room_id}/rating", response_model=RoomRatingResponse)
async def room_rating(room_id: str, db: Session = Depends(get_db)):
    rating = ReviewAggregator(db).get_room_rating(room_id)
    return RoomRatingResponse(
        room_id=rating.room_id,
        average_rating=rating.average_rating,
        total_reviews=rating.total_reviews,
        distribution=rating.distribution,
    )


@router.get("/{room_id}/reviews", response_model=List[ReviewResponse])
async def room_reviews(
    room_id: str,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    return ReviewAggregator(db).list_reviews(room_id=room_id, limit=limit)
