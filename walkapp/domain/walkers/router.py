"""Walker router - FastAPI endpoints for walkers and availability"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...cache import Cache, get_cache
from ...database import get_db
from ...models import User
from .schemas import AvailabilityResponse, AvailabilityUpdate, WalkerCreate, WalkerResponse
from .service import WalkerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/walkers", tags=["Walkers"])


def get_walker_service(
    db: Session = Depends(get_db), cache: Cache = Depends(get_cache)
) -> WalkerService:
    """Dependency injection for WalkerService"""
    return WalkerService(db, cache)


@router.post("", response_model=WalkerResponse, status_code=201)
async def create_walker(
    data: WalkerCreate,
    current_user: User = Depends(require_roles("admin")),
    service: WalkerService = Depends(get_walker_service),
):
    """Create a walker (admin only)"""
    return service.create_walker(data)


@router.get("", response_model=list[WalkerResponse])
async def list_walkers(
    current_user: User = Depends(get_current_user),
    service: WalkerService = Depends(get_walker_service),
):
    return service.list_walkers()


@router.get("/{walker_id}", response_model=WalkerResponse)
async def get_walker(
    walker_id: int,
    current_user: User = Depends(get_current_user),
    service: WalkerService = Depends(get_walker_service),
):
    return service.get_walker(walker_id)


@router.put("/{walker_id}/availability", response_model=WalkerResponse)
async def update_availability(
    walker_id: int,
    data: AvailabilityUpdate,
    current_user: User = Depends(require_roles("admin", "walker")),
    service: WalkerService = Depends(get_walker_service),
):
    """Replace a walker's weekly availability windows"""
    return service.update_availability(walker_id, data, current_user)


@router.get("/{walker_id}/availability", response_model=AvailabilityResponse)
async def get_availability(
    walker_id: int,
    day: date = Query(..., alias="date", description="Day to check (YYYY-MM-DD)"),
    current_user: User = Depends(get_current_user),
    service: WalkerService = Depends(get_walker_service),
):
    """Slots still open for booking on a day, with occupancy"""
    return service.get_availability(walker_id, day)
