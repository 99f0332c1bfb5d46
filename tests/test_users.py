import pytest
from pydantic import ValidationError as SchemaValidationError

from conftest import TOMORROW
from labbooking.domain.users.schemas import UserCreate, UserUpdate
from labbooking.domain.users.service import UserService
from labbooking.models import Booking, User
from labbooking.shared.errors import Conflict, NotFound


@pytest.fixture
def user_service(db):
    return UserService(db)


def test_create_user_defaults_to_faculty(user_service):
    user = user_service.create_user(UserCreate(name="  Nina New ", email="Nina@Example.edu"))
    assert user.name == "Nina New"
    assert user.email == "nina@example.edu"
    assert user.role == "faculty"
    assert user.is_active is True


def test_user_schema_rejects_bad_input():
    with pytest.raises(SchemaValidationError):
        UserCreate(name="Nina", email="not-an-email")
    with pytest.raises(SchemaValidationError):
        UserCreate(name="   ", email="nina@example.edu")
    with pytest.raises(SchemaValidationError):
        UserUpdate(role="student")


def test_emails_are_unique_ignoring_case(user_service, faculty):
    with pytest.raises(Conflict) as exc:
        user_service.create_user(UserCreate(name="Copy", email=faculty.email.upper()))
    assert exc.value.detail["existing_user_id"] == faculty.id


def test_list_users_filters_and_pages(user_service, admin, faculty, other_faculty):
    everyone = user_service.list_users(limit=2)
    assert everyone["total_users"] == 3
    assert everyone["total_pages"] == 2
    assert everyone["has_more"] is True
    assert len(everyone["users"]) == 2

    last = user_service.list_users(page=2, limit=2)
    assert len(last["users"]) == 1
    assert last["has_more"] is False

    assert user_service.list_users(role="faculty")["total_users"] == 2
    found = user_service.list_users(search="OMAR")["users"]
    assert [user.id for user in found] == [other_faculty.id]


def test_get_user_includes_booking_counts_for_faculty(user_service, service, lab, faculty, admin):
    slot = service.add_slot(lab.id, TOMORROW, "9:00 AM", "10:00 AM")
    service.book_slot(faculty, slot.id)

    assert user_service.get_user(faculty.id)["stats"] == {
        "total_bookings": 1,
        "active_bookings": 1,
        "completed_bookings": 0,
    }
    assert user_service.get_user(admin.id)["stats"] is None
    with pytest.raises(NotFound):
        user_service.get_user(12345)


def test_update_user(user_service, faculty, other_faculty):
    with pytest.raises(Conflict):
        user_service.update_user(faculty.id, UserUpdate(email=other_faculty.email))

    # Keeping your own email is not a conflict
    user = user_service.update_user(
        faculty.id, UserUpdate(email=faculty.email, role="admin", is_active=False)
    )
    assert user.role == "admin"
    assert user.is_active is False


def test_delete_user_blocked_by_active_bookings(user_service, service, lab, faculty, db):
    slot = service.add_slot(lab.id, TOMORROW, "9:00 AM", "10:00 AM")
    booking = service.book_slot(faculty, slot.id)

    with pytest.raises(Conflict) as exc:
        user_service.delete_user(faculty.id)
    assert exc.value.detail["active_bookings"] == 1

    service.cancel_booking(faculty, booking.id)
    faculty_id = faculty.id
    assert user_service.delete_user(faculty_id) == {"message": "User deleted successfully"}
    assert db.query(User).filter(User.id == faculty_id).first() is None
    assert db.query(Booking).filter(Booking.faculty_id == faculty_id).count() == 0


def test_user_stats(user_service, admin, faculty, other_faculty):
    user_service.update_user(other_faculty.id, UserUpdate(is_active=False))

    assert user_service.get_stats() == {
        "total_users": 3,
        "active_users": 2,
        "inactive_users": 1,
        "faculties": 2,
        "admins": 1,
        "recent_registrations": 3,
    }


def test_ensure_admin_is_idempotent(user_service, db):
    first = user_service.ensure_admin("Root@Example.edu", "Root")
    again = user_service.ensure_admin("root@example.edu", "Someone Else")

    assert first.id == again.id
    assert first.role == "admin"
    assert db.query(User).count() == 1
