import inspect

from conftest import TOMORROW, auth
from labbooking.domain.scheduling import router as scheduling_router


def create_slot(client, admin, lab, start="9:00 AM", end="10:00 AM", day=TOMORROW):
    return client.post(
        "/slots",
        json={"lab_id": lab.id, "date": day.isoformat(), "start_time": start, "end_time": end},
        headers=auth(admin),
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_requests_without_user_are_rejected(client):
    response = client.get("/labs")
    assert response.status_code == 401


def test_unknown_user_is_rejected(client):
    response = client.get("/labs", headers={"X-User-Id": "9999"})
    assert response.status_code == 401


def test_lab_management_is_admin_only(client, admin, faculty):
    response = client.post("/labs", json={"name": "Robotics Lab"}, headers=auth(faculty))
    assert response.status_code == 403
    assert response.json()["detail"]["error"] == "unauthorized"

    response = client.post(
        "/labs", json={"name": "Robotics Lab", "capacity": 12}, headers=auth(admin)
    )
    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Robotics Lab"
    assert body["capacity"] == 12

    labs = client.get("/labs", headers=auth(faculty)).json()
    assert [lab["name"] for lab in labs] == ["Robotics Lab"]


def test_create_slot(client, admin, lab):
    response = create_slot(client, admin, lab, start="09:00 am", end="10:30AM")
    assert response.status_code == 201
    body = response.json()
    assert body["date"] == TOMORROW.isoformat()
    assert body["start_time"] == "9:00 AM"
    assert body["end_time"] == "10:30 AM"
    assert body["status"] == "available"
    assert body["is_available"] is True
    assert body["lab_name"] == "Chemistry Lab"


def test_slot_errors_are_structured(client, admin, lab, second_lab):
    create_slot(client, admin, lab)

    response = create_slot(client, admin, second_lab, start="9:30 AM", end="11:00 AM")
    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["error"] == "time_conflict"
    assert detail["conflicting_lab_name"] == "Chemistry Lab"

    response = create_slot(client, admin, lab, start="9 AM")
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "invalid_time_format"


def test_booking_flow(client, admin, faculty, other_faculty, lab, notifier):
    slot_id = create_slot(client, admin, lab).json()["id"]

    response = client.post(
        "/bookings", json={"slot_id": slot_id, "notes": "Lab practical"}, headers=auth(faculty)
    )
    assert response.status_code == 201
    booking = response.json()
    assert booking["status"] == "booked"
    assert booking["lab_name"] == "Chemistry Lab"
    assert len(notifier.sent) == 1

    slot = client.get(f"/slots/{slot_id}", headers=auth(faculty)).json()
    assert slot["status"] == "booked"
    assert slot["current_bookings"] == 1

    response = client.post("/bookings", json={"slot_id": slot_id}, headers=auth(faculty))
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "already_booked"

    response = client.post("/bookings", json={"slot_id": slot_id}, headers=auth(other_faculty))
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "slot_unavailable"

    response = client.post(
        f"/bookings/{booking['id']}/cancel", headers=auth(other_faculty)
    )
    assert response.status_code == 403

    response = client.post(f"/bookings/{booking['id']}/cancel", headers=auth(faculty))
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"

    mine = client.get("/bookings/me", headers=auth(faculty)).json()
    assert [b["status"] for b in mine] == ["cancelled"]
    stats = client.get("/bookings/me/stats", headers=auth(faculty)).json()
    assert stats["cancelled_bookings"] == 1


def test_admins_cannot_book(client, admin, lab):
    slot_id = create_slot(client, admin, lab).json()["id"]
    response = client.post("/bookings", json={"slot_id": slot_id}, headers=auth(admin))
    assert response.status_code == 403


def test_available_slots_and_status_automation(client, admin, faculty, lab, clock):
    create_slot(client, admin, lab)

    available = client.get("/slots/available", headers=auth(faculty)).json()
    assert len(available) == 1

    clock.advance(days=2)
    response = client.post("/status/automation/run", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["slots_completed"] == 1

    assert client.get("/slots/available", headers=auth(faculty)).json() == []
    response = client.post("/status/automation/run", headers=auth(faculty))
    assert response.status_code == 403


def test_cancel_slot_and_restore(client, admin, lab):
    slot_id = create_slot(client, admin, lab).json()["id"]

    response = client.post(f"/slots/{slot_id}/cancel", headers=auth(admin))
    assert response.json()["status"] == "cancelled"

    response = client.post(f"/slots/{slot_id}/restore", headers=auth(admin))
    assert response.json()["status"] == "available"

    response = client.delete(f"/slots/{slot_id}", headers=auth(admin))
    assert response.status_code == 200
    assert client.get("/slots", headers=auth(admin)).json() == []


def test_booking_writes_run_in_the_threadpool():
    # They can wait on the lab/day lock, which must not block the event loop
    assert not inspect.iscoroutinefunction(scheduling_router.book_slot)
    assert not inspect.iscoroutinefunction(scheduling_router.cancel_booking)


def test_booking_detail_is_owner_or_admin(client, admin, faculty, other_faculty, lab):
    slot_id = create_slot(client, admin, lab).json()["id"]
    booking_id = client.post(
        "/bookings", json={"slot_id": slot_id}, headers=auth(faculty)
    ).json()["id"]

    response = client.get(f"/bookings/{booking_id}", headers=auth(faculty))
    assert response.status_code == 200
    assert response.json()["slot_id"] == slot_id

    assert client.get(f"/bookings/{booking_id}", headers=auth(admin)).status_code == 200
    response = client.get(f"/bookings/{booking_id}", headers=auth(other_faculty))
    assert response.status_code == 403
    assert client.get("/bookings/9999", headers=auth(admin)).status_code == 404


def test_user_management(client, admin, faculty):
    response = client.post(
        "/users",
        json={"name": "Nina New", "email": "Nina@Example.edu"},
        headers=auth(faculty),
    )
    assert response.status_code == 403

    response = client.post(
        "/users", json={"name": "Nina New", "email": "Nina@Example.edu"}, headers=auth(admin)
    )
    assert response.status_code == 201
    created = response.json()
    assert created["email"] == "nina@example.edu"
    assert created["role"] == "faculty"

    response = client.post(
        "/users", json={"name": "Nina Again", "email": "nina@example.edu"}, headers=auth(admin)
    )
    assert response.status_code == 409

    response = client.post(
        "/users", json={"name": "Bad Role", "email": "x@example.edu", "role": "student"},
        headers=auth(admin),
    )
    assert response.status_code == 422

    # The new account can act straight away
    me = client.get("/users/me", headers={"X-User-Id": str(created["id"])}).json()
    assert me["name"] == "Nina New"

    page = client.get("/users?role=faculty", headers=auth(admin)).json()
    assert page["total_users"] == 2
    assert client.get("/users/stats", headers=auth(admin)).json()["admins"] == 1

    detail = client.get(f"/users/{faculty.id}", headers=auth(admin)).json()
    assert detail["stats"] == {"total_bookings": 0, "active_bookings": 0, "completed_bookings": 0}

    response = client.patch(
        f"/users/{created['id']}", json={"is_active": False}, headers=auth(admin)
    )
    assert response.json()["is_active"] is False
    response = client.get("/users/me", headers={"X-User-Id": str(created["id"])})
    assert response.status_code == 401

    response = client.delete(f"/users/{created['id']}", headers=auth(admin))
    assert response.status_code == 200
    assert client.get(f"/users/{created['id']}", headers=auth(admin)).status_code == 404


def test_update_own_profile(client, faculty, other_faculty):
    response = client.patch("/users/me", json={"name": "Farah F."}, headers=auth(faculty))
    assert response.status_code == 200
    assert response.json()["name"] == "Farah F."

    response = client.patch(
        "/users/me", json={"email": other_faculty.email}, headers=auth(faculty)
    )
    assert response.status_code == 409
