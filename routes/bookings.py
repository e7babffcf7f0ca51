from flask import Blueprint, jsonify, g

from models import db
from models.user import User
from security.rbac import require_role
from utils.audit import log_event
from utils.booking import book_slot, LANGUAGE_LEVELS
from utils.errors import ValidationError, NotFoundError
from utils.validation import json_body, optional_str

bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


def _required_id(data: dict, field: str) -> int:
    value = data.get(field)
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        raise ValidationError(f"{field} is required", details={field: value})
    return value


@bookings_bp.post("")
@require_role("student")
def create_booking():
    data = json_body()
    slot_id = _required_id(data, "date_id")
    teacher_id = _required_id(data, "teacher_id")
    notes = optional_str(data, "notes", max_len=2000)

    language_level = data.get("language_level")
    if language_level is not None and language_level not in LANGUAGE_LEVELS:
        raise ValidationError("Invalid language level", details={"allowed": list(LANGUAGE_LEVELS)})

    is_first_lesson = data.get("is_first_lesson")
    if is_first_lesson is not None and not isinstance(is_first_lesson, bool):
        raise ValidationError("is_first_lesson must be a boolean")

    teacher = db.session.get(User, teacher_id)
    if teacher is None or not teacher.is_tutor:
        raise NotFoundError("Teacher not found")

    reservation, lesson = book_slot(
        student_id=g.user.id,
        slot_id=slot_id,
        teacher_id=teacher.id,
        notes=notes,
        language_level=language_level,
    )
    db.session.commit()

    log_event(
        "BOOKING_CREATE",
        user_id=g.user.id,
        entity="reservation",
        entity_id=reservation.id,
        metadata={"slot_id": slot_id, "lesson_id": lesson.id, "is_first_lesson": is_first_lesson},
    )
    return jsonify(
        message="Reservation created successfully",
        data={"reservation_id": reservation.id, "lesson_id": lesson.id},
    ), 201
