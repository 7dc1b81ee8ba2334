import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTO_ASSIGN_ENABLED"] = "false"

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.security import hash_password  # noqa: E402
from app.db.base import Base, get_db, utcnow  # noqa: E402
from app.db.models.booking import Booking, BookingStatus  # noqa: E402
from app.db.models.provider import ApprovalStatus, Provider  # noqa: E402
from app.db.models.service import Service  # noqa: E402
from app.db.models.user import Role, User  # noqa: E402
from app.main import app  # noqa: E402
from app.services.notifications import NotificationDispatcher, get_dispatcher  # noqa: E402


class RecordingEmailClient:
    def __init__(self):
        self.sent = []

    def send_assignment(self, email):
        self.sent.append(email)
        return True


class RecordingPushClient:
    def __init__(self):
        self.sent = []

    def send(self, push):
        self.sent.append(push)
        return True


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def email_client():
    return RecordingEmailClient()


@pytest.fixture
def push_client():
    return RecordingPushClient()


@pytest.fixture
def dispatcher(email_client, push_client):
    return NotificationDispatcher(email_client=email_client, push_client=push_client)


@pytest.fixture
def client(session_factory, dispatcher):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


class Factory:
    def __init__(self, db):
        self.db = db
        self._n = 0

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role=Role.CUSTOMER, name=None, phone="9876543210", password="secret"):
        self._n += 1
        name = name or f"{role.value.title()} {self._n}"
        return self._save(
            User(
                name=name,
                email=f"user{self._n}@example.com",
                phone=phone,
                role=role.value,
                password_hash=hash_password(password),
            )
        )

    def service(self, name="Plumbing", base_price=500.0, max_price=None):
        return self._save(Service(name=name, description=f"{name} work", base_price=base_price, max_price=max_price))

    def provider(
        self,
        skill="Plumbing",
        area="Cidco",
        rating=0.0,
        is_active=True,
        approval_status=ApprovalStatus.ACTIVE,
        is_deleted=False,
        push_subscription_id=None,
        user=None,
    ):
        user = user or self.user(Role.PROVIDER)
        return self._save(
            Provider(
                user_id=user.id,
                skill=skill,
                area=area,
                rating=rating,
                is_active=is_active,
                approval_status=approval_status.value,
                is_deleted=is_deleted,
                push_subscription_id=push_subscription_id,
            )
        )

    def booking(
        self,
        customer=None,
        service=None,
        provider=None,
        status=BookingStatus.PENDING,
        area="Cidco N-2",
        age=timedelta(0),
        rating=None,
    ):
        customer = customer or self.user(Role.CUSTOMER)
        service = service or self.service()
        return self._save(
            Booking(
                customer_id=customer.id,
                service_id=service.id,
                provider_id=provider.id if provider else None,
                description="Leaking tap",
                address="Plot 12",
                area=area,
                date="2026-10-20",
                time="10:00",
                amount=service.base_price,
                status=status.value,
                rating=rating,
                created_at=utcnow() - age,
            )
        )


@pytest.fixture
def factory(db):
    return Factory(db)


def auth(user):
    return {"X-User-Id": user.id}
