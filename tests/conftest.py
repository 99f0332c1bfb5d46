import os

# Must be set before labbooking.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BOOKING_LOCK_REDIS_ENABLED"] = "false"
os.environ["EMAIL_NOTIFICATIONS_ENABLED"] = "false"

from datetime import date, datetime  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from labbooking.clock import FixedClock, get_clock  # noqa: E402
from labbooking.database import Base, get_db  # noqa: E402
from labbooking.domain.scheduling.service import SchedulingService  # noqa: E402
from labbooking.main import app  # noqa: E402
from labbooking.models import Lab, Slot, User  # noqa: E402
from labbooking.services.notification_service import get_notifier  # noqa: E402

# Monday 14 Jan 2030, 8:00 AM
NOW = datetime(2030, 1, 14, 8, 0)
TODAY = NOW.date()
TOMORROW = date(2030, 1, 15)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify_booking_created(self, faculty_contact, slot_summary):
        self.sent.append((faculty_contact, slot_summary))
        return {"email_sent": True, "email_error": None}


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
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(db, clock, notifier):
    return SchedulingService(db, clock=clock, notifier=notifier)


def _add(db, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def admin(db):
    return _add(db, User(name="Ada Admin", email="admin@example.edu", role="admin", is_active=True))


@pytest.fixture
def faculty(db):
    return _add(
        db, User(name="Farah Faculty", email="farah@example.edu", role="faculty", is_active=True)
    )


@pytest.fixture
def other_faculty(db):
    return _add(
        db, User(name="Omar Other", email="omar@example.edu", role="faculty", is_active=True)
    )


@pytest.fixture
def lab(db):
    return _add(
        db,
        Lab(name="Chemistry Lab", location="Block A", capacity=30, equipment=[], is_active=True),
    )


@pytest.fixture
def second_lab(db):
    return _add(
        db,
        Lab(name="Physics Lab", location="Block B", capacity=20, equipment=[], is_active=True),
    )


@pytest.fixture
def insert_slot(db):
    """Store a slot directly, bypassing conflict detection"""

    def _insert(lab, day, start_time, end_time, **fields):
        values = {
            "capacity": lab.capacity,
            "booked_count": 0,
            "status": "available",
            "is_active": True,
        }
        values.update(fields)
        return _add(
            db,
            Slot(lab_id=lab.id, date=day, start_time=start_time, end_time=end_time, **values),
        )

    return _insert


@pytest.fixture
def client(session_factory, clock, notifier):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user):
    return {"X-User-Id": str(user.id)}
