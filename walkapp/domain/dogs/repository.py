"""Dog repository - Database operations for owners and dogs"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Dog, Owner


class DogRepository:
    """Repository for owner and dog database operations"""

    @staticmethod
    def get_owner_by_id(db: Session, owner_id: int) -> Optional[Owner]:
        return db.query(Owner).filter(Owner.id == owner_id).first()

    @staticmethod
    def get_owner_by_user_id(db: Session, user_id: int) -> Optional[Owner]:
        return db.query(Owner).filter(Owner.user_id == user_id).first()

    @staticmethod
    def create_owner(db: Session, **owner_data) -> Owner:
        owner = Owner(**owner_data)
        db.add(owner)
        db.commit()
        db.refresh(owner)
        return owner

    @staticmethod
    def get_dog_by_id(db: Session, dog_id: int) -> Optional[Dog]:
        return db.query(Dog).filter(Dog.id == dog_id).first()

    @staticmethod
    def get_dogs_for_owner(db: Session, owner_id: int) -> list[Dog]:
        return db.query(Dog).filter(Dog.owner_id == owner_id).order_by(Dog.name).all()

    @staticmethod
    def create_dog(db: Session, owner_id: int, **dog_data) -> Dog:
        dog = Dog(owner_id=owner_id, **dog_data)
        db.add(dog)
        db.commit()
        db.refresh(dog)
        return dog
