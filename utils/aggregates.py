"""Teacher-student lesson counters.

``TeacherStudent`` and ``TeacherProfile`` hold counts that can be derived from
the ``lessons`` table. They are never incremented in place: every write path
recounts them from the lessons inside its own transaction, so a rolled-back
request leaves them untouched and a committed one leaves them exact.
"""
from sqlalchemy import func

from models import db
from models.lesson import Lesson, LESSON_COMPLETED, LESSON_PLANNED
from models.teacher_student import TeacherStudent
from models.user import TeacherProfile, User, ROLE_TUTOR


def _status_counts(*criteria) -> dict:
    rows = (
        db.session.query(Lesson.status, func.count(Lesson.id))
        .filter(*criteria)
        .group_by(Lesson.status)
        .all()
    )
    return {status: count for status, count in rows}


def get_or_create_pair(teacher_id: int, student_id: int) -> TeacherStudent:
    row = db.session.get(TeacherStudent, (teacher_id, student_id))
    if row is None:
        row = TeacherStudent(teacher_id=teacher_id, student_id=student_id, lessons_completed=0, lessons_reserved=0)
        db.session.add(row)
    return row


def recount_pair(teacher_id: int, student_id: int) -> TeacherStudent:
    row = get_or_create_pair(teacher_id, student_id)
    counts = _status_counts(Lesson.teacher_id == teacher_id, Lesson.student_id == student_id)
    row.lessons_completed = counts.get(LESSON_COMPLETED, 0)
    row.lessons_reserved = counts.get(LESSON_PLANNED, 0)
    return row


def recount_teacher(teacher_id: int) -> TeacherProfile:
    profile = db.session.get(TeacherProfile, teacher_id)
    if profile is None:
        profile = TeacherProfile(teacher_id=teacher_id)
        db.session.add(profile)
    counts = _status_counts(Lesson.teacher_id == teacher_id)
    profile.lessons_completed = counts.get(LESSON_COMPLETED, 0)
    profile.lessons_planned = counts.get(LESSON_PLANNED, 0)
    return profile


def sync_lesson_counters(teacher_id: int, student_id: int):
    """Recount everything a lesson of this pair contributes to. Does not commit."""
    recount_pair(teacher_id, student_id)
    recount_teacher(teacher_id)


def recount_all() -> int:
    """Rebuild every counter from the lessons table. Returns the number of pairs touched."""
    pairs = {
        (teacher_id, student_id)
        for teacher_id, student_id in db.session.query(Lesson.teacher_id, Lesson.student_id).distinct()
    }
    pairs.update((r.teacher_id, r.student_id) for r in TeacherStudent.query.all())

    for teacher_id, student_id in pairs:
        recount_pair(teacher_id, student_id)

    tutor_ids = [row.id for row in User.query.filter_by(role=ROLE_TUTOR).all()]
    for teacher_id in tutor_ids:
        recount_teacher(teacher_id)

    db.session.commit()
    return len(pairs)
