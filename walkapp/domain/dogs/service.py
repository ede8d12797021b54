"""Dog service - Business logic for owners and dogs"""

import logging

from sqlalchemy.orm import Session

from ...models import Dog, Owner, User
from ...shared.errors import NotFound, PermissionDenied
from .eligibility import can_book
from .repository import DogRepository
from .schemas import DogCreate, OwnerCreate

logger = logging.getLogger(__name__)


class DogService:
    """Service layer for owner and dog business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DogRepository()

    def get_owner(self, owner_id: int) -> Owner:
        owner = self.repo.get_owner_by_id(self.db, owner_id)
        if not owner:
            raise NotFound("Owner", owner_id)
        return owner

    def create_owner(self, data: OwnerCreate, user: User) -> Owner:
        user_id = data.userId
        if user.role != "admin":
            # Owners can only create their own profile
            user_id = user.id
        owner = self.repo.create_owner(
            self.db, user_id=user_id, name=data.name, email=data.email, phone=data.phone
        )
        logger.info(f"✅ Owner {owner.id} created")
        return owner

    def get_dog(self, dog_id: int) -> Dog:
        dog = self.repo.get_dog_by_id(self.db, dog_id)
        if not dog:
            raise NotFound("Dog", dog_id)
        return dog

    def create_dog(self, data: DogCreate, user: User) -> Dog:
        owner = self.get_owner(data.ownerId)
        ensure_owner_access(owner, user)

        if not data.assessmentRequired and user.role != "admin":
            raise PermissionDenied("Only admins can exempt a dog from assessment")

        dog = self.repo.create_dog(
            self.db,
            owner.id,
            name=data.name,
            breed=data.breed,
            size=data.size,
            assessment_status="none" if data.assessmentRequired else "not_required",
        )
        logger.info(f"🐕 Dog {dog.id} registered for owner {owner.id} ({dog.assessment_status})")
        return dog

    def list_dogs(self, owner_id: int, user: User) -> list[Dog]:
        owner = self.get_owner(owner_id)
        ensure_owner_access(owner, user)
        return self.repo.get_dogs_for_owner(self.db, owner.id)


def ensure_owner_access(owner: Owner, user: User) -> None:
    """Owners may only act on their own profile; admins on any"""
    if user.role == "admin":
        return
    if owner.user_id is None or owner.user_id != user.id:
        raise PermissionDenied("Not authorized for this owner")


def to_dog_response(dog: Dog) -> dict:
    return {
        "id": dog.id,
        "owner_id": dog.owner_id,
        "name": dog.name,
        "breed": dog.breed,
        "size": dog.size,
        "assessment_status": dog.assessment_status,
        "can_book": can_book(dog),
    }
