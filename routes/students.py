from flask import Blueprint, jsonify

from models.lesson import Lesson
from models.teacher_student import TeacherStudent
from models.user import User
from security.rbac import require_self

students_bp = Blueprint("students", __name__, url_prefix="/api/students")


@students_bp.get("/<int:student_id>/lessons")
def student_lessons(student_id: int):
    require_self(student_id)

    lessons = (
        Lesson.query
        .filter_by(student_id=student_id)
        .order_by(Lesson.scheduled_at.desc())
        .all()
    )
    teachers = {
        u.id: u for u in User.query.filter(User.id.in_({l.teacher_id for l in lessons})).all()
    } if lessons else {}

    return jsonify(lessons=[
        {
            "id": l.id,
            "scheduled_at": l.scheduled_at.isoformat(),
            "duration_minutes": l.duration_minutes,
            "status": l.status,
            "reservation_id": l.reservation_id,
            "teacher": teachers[l.teacher_id].summary() if l.teacher_id in teachers else {"id": l.teacher_id},
        }
        for l in lessons
    ]), 200


@students_bp.get("/<int:student_id>/teachers")
def student_teachers(student_id: int):
    require_self(student_id)

    out = []
    for r in TeacherStudent.query.filter_by(student_id=student_id).all():
        profile = r.teacher.teacher_profile
        out.append({
            **r.teacher.summary(),
            "bio": (profile.bio if profile else None) or "",
            "description": (profile.description if profile else None) or "",
            "lessons_completed": r.lessons_completed,
            "lessons_reserved": r.lessons_reserved,
            "total_lessons_completed": profile.lessons_completed if profile else 0,
            "profile_created_at": r.teacher.created_at.isoformat(),
        })
    return jsonify(teachers=out), 200
