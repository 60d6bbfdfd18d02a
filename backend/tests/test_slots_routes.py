from __future__ import annotations

from datetime import time

from app.models.interview_slot import InterviewSlot
from app.models.registration import Registration


def _slot_payload(**overrides):
    payload = {
        "date": "2030-01-15",
        "start_time": "13:00:00",
        "end_time": "14:00:00",
        "capacity": 2,
        "classroom_id": 7,
        "interviewer_ids": [],
    }
    payload.update(overrides)
    return payload


def test_public_slot_listing_and_availability(anon_client, interview, make_slot, users, client_for):
    open_slot = make_slot(interview, capacity=2)
    tight = make_slot(interview, capacity=1, interviewers=[])

    with client_for(users["candidate"]) as c:
        c.post("/registrations", json={"interview_id": interview.id, "slot_id": tight.id})

    all_slots = anon_client.get(f"/interviews/{interview.id}/slots")
    assert all_slots.status_code == 200
    by_id = {s["id"]: s for s in all_slots.json()}
    assert by_id[open_slot.id]["available"] == 2
    assert by_id[open_slot.id]["interviewer_ids"] == [users["interviewer"].id]
    assert by_id[tight.id]["booked_count"] == 1
    assert by_id[tight.id]["available"] == 0

    available = anon_client.get(f"/interviews/{interview.id}/available-slots")
    assert [s["id"] for s in available.json()] == [open_slot.id]

    missing = anon_client.get("/interviews/999/slots")
    assert missing.status_code == 404


def test_admin_creates_slot(users, client_for, interview):
    with client_for(users["admin"]) as c:
        res = c.post(
            f"/admin/interviews/{interview.id}/slots",
            json=_slot_payload(interviewer_ids=[users["interviewer"].id]),
        )
    assert res.status_code == 201
    body = res.json()
    assert body["booked_count"] == 0
    assert body["capacity"] == 2
    assert body["classroom_id"] == 7
    assert body["interviewer_ids"] == [users["interviewer"].id]


def test_slot_creation_validation(users, client_for, interview):
    with client_for(users["candidate"]) as c:
        assert c.post(f"/admin/interviews/{interview.id}/slots", json=_slot_payload()).status_code == 403

    with client_for(users["admin"]) as c:
        zero = c.post(f"/admin/interviews/{interview.id}/slots", json=_slot_payload(capacity=0))
        assert zero.status_code == 422

        backwards = c.post(
            f"/admin/interviews/{interview.id}/slots",
            json=_slot_payload(start_time="15:00:00", end_time="14:00:00"),
        )
        assert backwards.status_code == 400

        not_staff = c.post(
            f"/admin/interviews/{interview.id}/slots",
            json=_slot_payload(interviewer_ids=[users["candidate"].id]),
        )
        assert not_staff.status_code == 400
        assert str(users["candidate"].id) in not_staff.json()["error"]

        missing = c.post("/admin/interviews/999/slots", json=_slot_payload())
        assert missing.status_code == 404


def test_capacity_cannot_drop_below_booked(users, client_for, interview, make_slot):
    slot = make_slot(interview, capacity=3)
    for key in ("candidate", "other"):
        with client_for(users[key]) as c:
            c.post("/registrations", json={"interview_id": interview.id, "slot_id": slot.id})

    with client_for(users["admin"]) as c:
        shrink = c.put(f"/admin/slots/{slot.id}", json={"capacity": 1})
        assert shrink.status_code == 400
        assert shrink.json()["code"] == "CONFLICT"

        ok = c.put(f"/admin/slots/{slot.id}", json={"capacity": 2, "classroom_id": 9})
        assert ok.status_code == 200
        assert ok.json()["capacity"] == 2
        assert ok.json()["booked_count"] == 2
        assert ok.json()["available"] == 0

        reassigned = c.put(f"/admin/slots/{slot.id}", json={"interviewer_ids": [users["admin"].id]})
        assert reassigned.json()["interviewer_ids"] == [users["admin"].id]

        assert c.put("/admin/slots/999", json={"capacity": 4}).status_code == 404


def test_slot_delete_refused_while_booked(users, client_for, interview, slot, db_session):
    with client_for(users["candidate"]) as c:
        reg_id = c.post("/registrations", json={"interview_id": interview.id, "slot_id": slot.id}).json()["id"]

    with client_for(users["admin"]) as c:
        blocked = c.delete(f"/admin/slots/{slot.id}")
        assert blocked.status_code == 400
        assert blocked.json() == {"error": "Slot still has active registrations", "code": "CONFLICT"}

    with client_for(users["candidate"]) as c:
        c.put(f"/registrations/{reg_id}/cancel")

    with client_for(users["admin"]) as c:
        deleted = c.delete(f"/admin/slots/{slot.id}")
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Interview slot deleted successfully"}
        assert c.delete(f"/admin/slots/{slot.id}").status_code == 404

    db_session.expire_all()
    assert db_session.get(InterviewSlot, slot.id) is None
    cancelled = db_session.get(Registration, reg_id)
    assert cancelled.status == "cancelled"
    assert cancelled.slot_id is None


def test_interviewer_lists_only_assigned_slots(
    anon_client, client_for, users, interview, make_interview, make_slot
):
    second = make_interview(title="Data Engineer")
    late = make_slot(interview, capacity=2, start=time(15, 0))
    early = make_slot(second, capacity=1, start=time(9, 0))
    make_slot(interview, capacity=1, interviewers=[users["admin"]])

    with client_for(users["interviewer"]) as c:
        res = c.get("/interviews/slots/mine")
    assert res.status_code == 200
    assert [s["id"] for s in res.json()] == [early.id, late.id]
    assert {s["interview_id"] for s in res.json()} == {interview.id, second.id}

    with client_for(users["candidate"]) as c:
        forbidden = c.get("/interviews/slots/mine")
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "FORBIDDEN"

    assert anon_client.get("/interviews/slots/mine").status_code == 401
