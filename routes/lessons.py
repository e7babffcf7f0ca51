from flask import Blueprint, jsonify, g

from models import db
from models.lesson import Lesson, LESSON_STATUSES
from security.rbac import require_role
from utils.audit import log_event
from utils.booking import update_lesson
from utils.errors import ValidationError, NotFoundError, ForbiddenError
from utils.validation import json_body, parse_timestamp

lessons_bp = Blueprint("lessons", __name__, url_prefix="/api/lessons")


@lessons_bp.patch("/<int:lesson_id>")
@require_role("tutor")
def patch_lesson(lesson_id: int):
    data = json_body()

    status = data.get("status")
    if status is not None and status not in LESSON_STATUSES:
        raise ValidationError("Invalid status", details={"status": status, "allowed": list(LESSON_STATUSES)})

    scheduled_at = None
    if data.get("scheduled_at") is not None:
        scheduled_at = parse_timestamp(data["scheduled_at"], "scheduled_at")

    duration = data.get("duration_minutes")
    if duration is not None and (not isinstance(duration, int) or isinstance(duration, bool) or duration < 1):
        raise ValidationError("duration_minutes must be a positive integer")

    lesson = db.session.get(Lesson, lesson_id)
    if lesson is None:
        raise NotFoundError("Lesson not found")
    if lesson.teacher_id != g.user.id:
        raise ForbiddenError("You can only update your own lessons")

    previous = lesson.status
    update_lesson(lesson, status=status, scheduled_at=scheduled_at, duration_minutes=duration)
    db.session.commit()

    log_event(
        "LESSON_UPDATE",
        user_id=g.user.id,
        entity="lesson",
        entity_id=lesson.id,
        metadata={"from": previous, "to": lesson.status},
    )
    return jsonify(message="Lesson updated", status=lesson.status), 200
