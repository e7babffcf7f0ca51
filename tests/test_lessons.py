import pytest

from conftest import future, create_slot, make_user
from models import db
from models.lesson import Lesson
from models.reservation import Reservation
from models.slot import Slot
from models.teacher_student import TeacherStudent
from models.user import TeacherProfile
from utils.aggregates import recount_all


def _assert_counters_match_lessons(teacher_id, student_id):
    pair = db.session.get(TeacherStudent, (teacher_id, student_id))
    lessons = Lesson.query.filter_by(teacher_id=teacher_id, student_id=student_id).all()
    assert pair.lessons_completed == sum(1 for l in lessons if l.status == "completed")
    assert pair.lessons_reserved == sum(1 for l in lessons if l.status == "planned")


def test_complete_lesson(app, tutor, student, slot_id, booking):
    client, tuser = tutor
    resp = client.patch(f"/api/lessons/{booking['lesson_id']}", json={"status": "completed"})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "completed"

    with app.app_context():
        assert db.session.get(Reservation, booking["reservation_id"]).status == "completed"
        assert db.session.get(Slot, slot_id).status == "booked"
        pair = db.session.get(TeacherStudent, (tuser["id"], student[1]["id"]))
        assert (pair.lessons_completed, pair.lessons_reserved) == (1, 0)
        profile = db.session.get(TeacherProfile, tuser["id"])
        assert (profile.lessons_completed, profile.lessons_planned) == (1, 0)


def test_cancel_lesson_cancels_reservation_and_slot(app, tutor, student, slot_id, booking):
    client, tuser = tutor
    resp = client.patch(f"/api/lessons/{booking['lesson_id']}", json={"status": "canceled"})
    assert resp.status_code == 200

    with app.app_context():
        assert db.session.get(Reservation, booking["reservation_id"]).status == "canceled"
        assert db.session.get(Slot, slot_id).status == "canceled"
        _assert_counters_match_lessons(tuser["id"], student[1]["id"])

    # the freed interval can be published again
    assert create_slot(client, future(hour=10), future(hour=11)).status_code == 201


@pytest.mark.parametrize("first,second", [("completed", "canceled"), ("canceled", "completed"), ("completed", "planned")])
def test_finished_lessons_are_final(tutor, booking, first, second):
    client, _ = tutor
    url = f"/api/lessons/{booking['lesson_id']}"
    assert client.patch(url, json={"status": first}).status_code == 200
    resp = client.patch(url, json={"status": second})
    assert resp.status_code == 409
    assert resp.get_json()["details"]["current_status"] == first


def test_reschedule_lesson(app, tutor, booking):
    client, _ = tutor
    resp = client.patch(
        f"/api/lessons/{booking['lesson_id']}",
        json={"scheduled_at": future(days=6, hour=9), "duration_minutes": 45},
    )
    assert resp.status_code == 200
    with app.app_context():
        lesson = db.session.get(Lesson, booking["lesson_id"])
        assert lesson.duration_minutes == 45
        assert lesson.scheduled_at.hour == 9
        assert lesson.status == "planned"


def test_lesson_update_validation_and_access(app, tutor, student, booking):
    client, _ = tutor
    url = f"/api/lessons/{booking['lesson_id']}"
    assert client.patch(url, json={"status": "done"}).status_code == 400
    assert client.patch(url, json={"duration_minutes": 0}).status_code == 400
    assert client.patch("/api/lessons/9999", json={"status": "completed"}).status_code == 404

    other, _ = make_user(app, "other.tutor@example.com", "tutor")
    assert other.patch(url, json={"status": "completed"}).status_code == 403
    assert student[0].patch(url, json={"status": "completed"}).status_code == 403


def test_counters_stay_consistent_across_mixed_transitions(app, tutor, student, booking):
    tclient, tuser = tutor
    sclient, suser = student
    lesson_ids = [booking["lesson_id"]]
    for hour in (13, 15, 17):
        slot = create_slot(tclient, future(hour=hour), future(hour=hour + 1)).get_json()["id"]
        resp = sclient.post("/api/bookings", json={"date_id": slot, "teacher_id": tuser["id"]})
        lesson_ids.append(resp.get_json()["data"]["lesson_id"])

    tclient.patch(f"/api/lessons/{lesson_ids[0]}", json={"status": "completed"})
    tclient.patch(f"/api/lessons/{lesson_ids[1]}", json={"status": "canceled"})
    tclient.patch(f"/api/lessons/{lesson_ids[2]}", json={"status": "completed"})

    with app.app_context():
        _assert_counters_match_lessons(tuser["id"], suser["id"])
        pair = db.session.get(TeacherStudent, (tuser["id"], suser["id"]))
        assert (pair.lessons_completed, pair.lessons_reserved) == (2, 1)


def test_recount_all_repairs_stale_counters(app, tutor, student, booking):
    with app.app_context():
        pair = db.session.get(TeacherStudent, (tutor[1]["id"], student[1]["id"]))
        pair.lessons_reserved = 7
        pair.lessons_completed = 3
        db.session.commit()

        assert recount_all() == 1
        _assert_counters_match_lessons(tutor[1]["id"], student[1]["id"])


def test_recount_cli(app, tutor, student, booking):
    result = app.test_cli_runner().invoke(args=["recount-aggregates"])
    assert result.exit_code == 0
    assert "Recounted 1 teacher-student pairs" in result.output
