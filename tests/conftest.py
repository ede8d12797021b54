import os
from datetime import date, datetime, timedelta

os.environ.setdefault("DB_LOG_SLOW_QUERIES", "false")
os.environ.setdefault("BACKGROUND_JOBS_ENABLED", "false")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from walkapp.auth import get_current_user
from walkapp.cache import Cache
from walkapp.database import Base, build_engine, get_db
from walkapp.main import app
from walkapp.models import Dog, Owner, SubscriptionPlan, User, UserSubscription, Walker

EVERY_DAY_AM_PM = {
    day: [{"start": "08:00", "end": "11:00"}, {"start": "13:00", "end": "16:00"}]
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'walkapp_test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cache():
    return Cache()


@pytest.fixture
def walk_day():
    """A future date; every weekday is covered by the default walker availability"""
    return date.today() + timedelta(days=7)


class Factory:
    """Seeds rows directly through a session"""

    def __init__(self, db: Session):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role: str = "owner") -> User:
        n = self._next()
        return self._save(User(firebase_uid=f"uid-{role}-{n}", email=f"{role}{n}@example.com", role=role))

    def owner(self, user: User = None) -> Owner:
        n = self._next()
        return self._save(
            Owner(user_id=user.id if user else None, name=f"Owner {n}", email=f"owner{n}@example.com")
        )

    def dog(self, owner: Owner, assessment_status: str = "approved") -> Dog:
        n = self._next()
        return self._save(Dog(owner_id=owner.id, name=f"Dog {n}", size="medium", assessment_status=assessment_status))

    def walker(self, capacity: int = 6, availability: dict = None, user: User = None) -> Walker:
        n = self._next()
        return self._save(
            Walker(
                user_id=user.id if user else None,
                name=f"Walker {n}",
                capacity_per_slot=capacity,
                availability=EVERY_DAY_AM_PM if availability is None else availability,
                preferred_dog_sizes=[],
            )
        )

    def plan(self, walk_credits: int = 10, walk_duration: int = 60, validity_period: int = 30) -> SubscriptionPlan:
        n = self._next()
        return self._save(
            SubscriptionPlan(
                name=f"Plan {n}",
                walk_credits=walk_credits,
                walk_duration=walk_duration,
                validity_period=validity_period,
                price=5000,
                is_active=True,
            )
        )

    def subscription(
        self,
        owner: Owner,
        credits: int = 10,
        credits_used: int = 0,
        status: str = "active",
        expires_in_days: int = 30,
    ) -> UserSubscription:
        plan = self.plan(walk_credits=credits)
        now = datetime.utcnow()
        return self._save(
            UserSubscription(
                owner_id=owner.id,
                plan_id=plan.id,
                total_credits=credits,
                credits_used=credits_used,
                status=status,
                purchase_date=now - timedelta(days=1),
                expiry_date=now + timedelta(days=expires_in_days),
            )
        )

    def bookable_dog(self, credits: int = 10):
        """Owner with an approved dog and an active subscription"""
        owner = self.owner()
        return owner, self.dog(owner), self.subscription(owner, credits=credits)


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def client(session_factory, cache):
    """API client; set ``client.user_id`` to choose the authenticated user"""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_current_user(db: Session = Depends(get_db)):
        return db.get(User, test_client.user_id)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_current_user
    app.state.cache = cache

    test_client = TestClient(app)
    test_client.user_id = None
    yield test_client

    app.dependency_overrides.clear()


