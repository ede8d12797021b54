"""Dog router - FastAPI endpoints for owners and dogs"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_roles
from ...database import get_db
from ...models import User
from .schemas import DogCreate, DogResponse, OwnerCreate, OwnerResponse
from .service import DogService, ensure_owner_access, to_dog_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dogs"])


def get_dog_service(db: Session = Depends(get_db)) -> DogService:
    """Dependency injection for DogService"""
    return DogService(db)


@router.post("/owners", response_model=OwnerResponse, status_code=201)
async def create_owner(
    data: OwnerCreate,
    current_user: User = Depends(require_roles("admin", "owner")),
    service: DogService = Depends(get_dog_service),
):
    """Create an owner profile"""
    return service.create_owner(data, current_user)


@router.get("/owners/{owner_id}/dogs", response_model=list[DogResponse])
async def list_owner_dogs(
    owner_id: int,
    current_user: User = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """List an owner's dogs with their booking eligibility"""
    return [to_dog_response(d) for d in service.list_dogs(owner_id, current_user)]


@router.post("/dogs", response_model=DogResponse, status_code=201)
async def create_dog(
    data: DogCreate,
    current_user: User = Depends(require_roles("admin", "owner")),
    service: DogService = Depends(get_dog_service),
):
    """Register a dog. New dogs need an assessment before they can be booked."""
    return to_dog_response(service.create_dog(data, current_user))


@router.get("/dogs/{dog_id}", response_model=DogResponse)
async def get_dog(
    dog_id: int,
    current_user: User = Depends(get_current_user),
    service: DogService = Depends(get_dog_service),
):
    """Get a dog and whether it can be booked"""
    dog = service.get_dog(dog_id)
    if current_user.role == "owner":
        ensure_owner_access(dog.owner, current_user)
    return to_dog_response(dog)
