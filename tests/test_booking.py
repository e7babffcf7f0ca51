from datetime import datetime, timedelta

from conftest import future, create_slot, make_user
from models import db
from models.lesson import Lesson
from models.reservation import Reservation
from models.slot import Slot
from models.teacher_student import TeacherStudent


def _book(client, slot_id, teacher_id, **extra):
    return client.post("/api/bookings", json={"date_id": slot_id, "teacher_id": teacher_id, **extra})


def test_booking_creates_linked_reservation_and_lesson(app, tutor, student, slot_id, booking):
    with app.app_context():
        slot = db.session.get(Slot, slot_id)
        assert slot.status == "booked"
        assert slot.student_id == student[1]["id"]

        reservations = Reservation.query.filter_by(slot_id=slot_id).all()
        assert len(reservations) == 1
        reservation = reservations[0]
        assert reservation.id == booking["reservation_id"]
        assert reservation.status == "confirmed"

        lessons = Lesson.query.filter_by(reservation_id=reservation.id).all()
        assert len(lessons) == 1
        lesson = lessons[0]
        assert lesson.id == booking["lesson_id"]
        assert lesson.teacher_id == tutor[1]["id"]
        assert lesson.student_id == student[1]["id"]
        assert lesson.scheduled_at == slot.start_time
        assert lesson.duration_minutes == 60
        assert lesson.status == "planned"


def test_booking_updates_counters(app, tutor, student, booking):
    with app.app_context():
        pair = db.session.get(TeacherStudent, (tutor[1]["id"], student[1]["id"]))
        assert pair.lessons_reserved == 1
        assert pair.lessons_completed == 0


def test_second_booking_of_same_slot_conflicts(app, tutor, slot_id, booking):
    other, _ = make_user(app, "second.student@example.com", "student")
    resp = _book(other, slot_id, tutor[1]["id"])
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Selected time slot is no longer available"

    with app.app_context():
        assert Reservation.query.count() == 1
        assert Lesson.query.count() == 1


def test_booking_unavailable_slot_writes_nothing(app, tutor, student):
    tclient, tuser = tutor
    slot_id = create_slot(tclient, future(hour=15), future(hour=16), status="other").get_json()["id"]

    resp = _book(student[0], slot_id, tuser["id"])
    assert resp.status_code == 409

    with app.app_context():
        assert db.session.get(Slot, slot_id).status == "other"
        assert Reservation.query.count() == 0
        assert Lesson.query.count() == 0
        assert TeacherStudent.query.count() == 0


def test_booking_slot_of_another_teacher_conflicts(app, student, slot_id):
    _, other = make_user(app, "other.tutor@example.com", "tutor")
    for date_id in (slot_id, 9999):
        resp = _book(student[0], date_id, other["id"])
        assert resp.status_code == 409
        assert resp.get_json()["details"] == {"reason": "not_found"}

    with app.app_context():
        assert Reservation.query.count() == 0


def test_booking_unknown_teacher_is_not_found(student, slot_id):
    assert _book(student[0], slot_id, 9999).status_code == 404


def test_booking_started_slot_conflicts(app, tutor, student):
    with app.app_context():
        start = datetime.utcnow() - timedelta(minutes=5)
        slot = Slot(teacher_id=tutor[1]["id"], start_time=start, end_time=start + timedelta(hours=1))
        db.session.add(slot)
        db.session.commit()
        slot_id = slot.id

    resp = _book(student[0], slot_id, tutor[1]["id"])
    assert resp.status_code == 409
    assert resp.get_json()["details"] == {"reason": "started"}

    with app.app_context():
        assert db.session.get(Slot, slot_id).status == "available"
        assert Lesson.query.count() == 0


def test_available_slot_with_stale_reservation_conflicts(app, tutor, student, slot_id):
    # a reservation left behind while the slot still reads available
    with app.app_context():
        db.session.add(Reservation(student_id=student[1]["id"], slot_id=slot_id, status="canceled"))
        db.session.commit()

    resp = _book(student[0], slot_id, tutor[1]["id"])
    assert resp.status_code == 409
    assert resp.get_json()["message"] == "Selected time slot is no longer available"

    with app.app_context():
        slot = db.session.get(Slot, slot_id)
        assert slot.status == "available"
        assert slot.student_id is None
        assert Reservation.query.count() == 1
        assert Lesson.query.count() == 0
        assert TeacherStudent.query.count() == 0


def test_tutors_cannot_book(tutor, slot_id):
    client, user = tutor
    assert _book(client, slot_id, user["id"]).status_code == 403


def test_booking_validation(student, tutor, slot_id):
    client, _ = student
    assert client.post("/api/bookings", json={"teacher_id": tutor[1]["id"]}).status_code == 400
    assert _book(client, slot_id, tutor[1]["id"], language_level="expert").status_code == 400
    assert _book(client, slot_id, tutor[1]["id"], is_first_lesson="yes").status_code == 400


def test_language_level_appended_to_notes(app, tutor, student, slot_id):
    resp = _book(student[0], slot_id, tutor[1]["id"], notes="Exam prep", language_level="intermediate", is_first_lesson=True)
    assert resp.status_code == 201
    with app.app_context():
        reservation = db.session.get(Reservation, resp.get_json()["data"]["reservation_id"])
        assert reservation.notes == "Exam prep\n\nLanguage level: intermediate"


def test_counters_accumulate_over_bookings(app, tutor, student, booking):
    tclient, tuser = tutor
    sclient, suser = student
    for hour in (12, 14):
        slot = create_slot(tclient, future(hour=hour), future(hour=hour, minute=30)).get_json()["id"]
        assert _book(sclient, slot, tuser["id"]).status_code == 201

    with app.app_context():
        pair = db.session.get(TeacherStudent, (tuser["id"], suser["id"]))
        assert pair.lessons_reserved == 3
        assert Lesson.query.filter_by(duration_minutes=30).count() == 2
