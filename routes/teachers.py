from flask import Blueprint, jsonify

from models import db
from models.lesson import Lesson
from models.teacher_student import TeacherStudent
from models.user import User, ROLE_TUTOR
from security.rbac import require_role, require_self
from utils.audit import log_event
from utils.errors import NotFoundError

teachers_bp = Blueprint("teachers", __name__, url_prefix="/api/teachers")


def _teacher_card(user: User) -> dict:
    profile = user.teacher_profile
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "bio": profile.bio if profile else None,
        "description": profile.description if profile else None,
        "lessons_completed": profile.lessons_completed if profile else 0,
    }


@teachers_bp.get("")
def list_teachers():
    tutors = User.query.filter_by(role=ROLE_TUTOR).order_by(User.first_name.asc(), User.id.asc()).all()
    return jsonify(success=True, data=[_teacher_card(t) for t in tutors]), 200


@teachers_bp.get("/<int:teacher_id>")
def get_teacher(teacher_id: int):
    tutor = db.session.get(User, teacher_id)
    if tutor is None or not tutor.is_tutor:
        raise NotFoundError("Teacher not found")
    return jsonify(success=True, data=_teacher_card(tutor)), 200


@teachers_bp.get("/<int:teacher_id>/lessons")
@require_role("tutor")
def teacher_lessons(teacher_id: int):
    require_self(teacher_id)

    lessons = (
        Lesson.query
        .filter_by(teacher_id=teacher_id)
        .order_by(Lesson.scheduled_at.desc())
        .all()
    )
    students = {
        u.id: u for u in User.query.filter(User.id.in_({l.student_id for l in lessons})).all()
    } if lessons else {}

    return jsonify(lessons=[
        {
            "id": l.id,
            "scheduled_at": l.scheduled_at.isoformat(),
            "duration_minutes": l.duration_minutes,
            "status": l.status,
            "reservation_id": l.reservation_id,
            "student": students[l.student_id].summary() if l.student_id in students else {"id": l.student_id},
        }
        for l in lessons
    ]), 200


@teachers_bp.get("/<int:teacher_id>/students")
@require_role("tutor")
def teacher_students(teacher_id: int):
    require_self(teacher_id)

    rows = TeacherStudent.query.filter_by(teacher_id=teacher_id).all()
    return jsonify(students=[
        {
            **r.student.summary(),
            "lessons_completed": r.lessons_completed,
            "lessons_reserved": r.lessons_reserved,
            "profile_created_at": r.student.created_at.isoformat(),
        }
        for r in rows
    ]), 200


@teachers_bp.delete("/<int:teacher_id>/students/<int:student_id>")
@require_role("tutor")
def remove_student(teacher_id: int, student_id: int):
    user = require_self(teacher_id)

    row = db.session.get(TeacherStudent, (teacher_id, student_id))
    if row is None:
        raise NotFoundError("Student is not assigned to this teacher")

    db.session.delete(row)
    db.session.commit()

    log_event("TEACHER_STUDENT_REMOVE", user_id=user.id, entity="user", entity_id=student_id)
    return jsonify(message="Student removed"), 200
