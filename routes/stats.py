from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import func

from models import db
from models.lesson import Lesson, LESSON_COMPLETED, LESSON_PLANNED
from models.teacher_student import TeacherStudent
from security.rbac import require_self

stats_bp = Blueprint("stats", __name__, url_prefix="/api/stats")


def _month_bounds(now: datetime):
    start = datetime(now.year, now.month, 1)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1)
    else:
        end = datetime(now.year, now.month + 1, 1)
    return start, end


def _tutor_stats(user_id: int, now: datetime) -> dict:
    month_start, month_end = _month_bounds(now)
    return {
        "active_students": TeacherStudent.query.filter_by(teacher_id=user_id).count(),
        "lessons_this_month": Lesson.query.filter(
            Lesson.teacher_id == user_id,
            Lesson.status == LESSON_COMPLETED,
            Lesson.scheduled_at >= month_start,
            Lesson.scheduled_at < month_end,
        ).count(),
        "planned_lessons": Lesson.query.filter(
            Lesson.teacher_id == user_id,
            Lesson.status == LESSON_PLANNED,
            Lesson.scheduled_at > now,
        ).count(),
    }


def _student_stats(user_id: int, now: datetime) -> dict:
    completed, minutes = (
        db.session.query(func.count(Lesson.id), func.coalesce(func.sum(Lesson.duration_minutes), 0))
        .filter(Lesson.student_id == user_id, Lesson.status == LESSON_COMPLETED)
        .one()
    )
    planned = Lesson.query.filter(
        Lesson.student_id == user_id,
        Lesson.status == LESSON_PLANNED,
        Lesson.scheduled_at > now,
    ).count()
    return {
        "lessons_completed": completed,
        "lessons_planned": planned,
        "total_hours": int(minutes / 60 + 0.5),
    }


@stats_bp.get("/<int:user_id>")
def user_stats(user_id: int):
    user = require_self(user_id)
    now = datetime.utcnow()
    if user.is_tutor:
        return jsonify(_tutor_stats(user.id, now)), 200
    return jsonify(_student_stats(user.id, now)), 200
