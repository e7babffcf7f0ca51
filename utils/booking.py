"""Booking and lesson lifecycle.

A booking is one transaction: the slot is claimed with a conditional UPDATE
(``available`` -> ``booked``), then the reservation and the lesson are inserted
and the counters recounted. Nothing is committed here; the caller commits once
and any exception rolls the whole unit back.
"""
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from models import db
from models.lesson import Lesson, LESSON_PLANNED, LESSON_COMPLETED, LESSON_CANCELED
from models.reservation import (
    Reservation,
    RESERVATION_CONFIRMED,
    RESERVATION_COMPLETED,
    RESERVATION_CANCELED,
)
from models.slot import Slot, SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CANCELED
from utils.aggregates import sync_lesson_counters
from utils.errors import ConflictError, ValidationError

log = logging.getLogger(__name__)

LANGUAGE_LEVELS = ("beginner", "intermediate", "advanced")

# lesson status -> reservation status it implies
_RESERVATION_FOR_LESSON = {
    LESSON_COMPLETED: RESERVATION_COMPLETED,
    LESSON_CANCELED: RESERVATION_CANCELED,
}


def lesson_duration_minutes(start: datetime, end: datetime) -> int:
    return int(round((end - start).total_seconds() / 60))


def _claim_slot(slot_id: int, teacher_id: int, student_id: int, now: datetime) -> int:
    return (
        Slot.query
        .filter(
            Slot.id == slot_id,
            Slot.teacher_id == teacher_id,
            Slot.status == SLOT_AVAILABLE,
            Slot.start_time > now,
        )
        .update({Slot.status: SLOT_BOOKED, Slot.student_id: student_id}, synchronize_session=False)
    )


def _explain_unclaimable(slot_id: int, teacher_id: int, now: datetime):
    slot = db.session.get(Slot, slot_id)
    if slot is None or slot.teacher_id != teacher_id:
        reason = "not_found"
    elif slot.start_time <= now:
        reason = "started"
    else:
        reason = slot.status
    raise ConflictError("Selected time slot is no longer available", details={"reason": reason})


def book_slot(student_id: int, slot_id: int, teacher_id: int, notes: str = None, language_level: str = None):
    """Book ``slot_id`` for a student. Returns ``(reservation, lesson)``; the caller commits."""
    now = datetime.utcnow()

    if not _claim_slot(slot_id, teacher_id, student_id, now):
        _explain_unclaimable(slot_id, teacher_id, now)

    slot = db.session.get(Slot, slot_id, populate_existing=True)

    if language_level:
        level_line = f"Language level: {language_level}"
        notes = f"{notes}\n\n{level_line}" if notes else level_line

    reservation = Reservation(
        student_id=student_id,
        slot_id=slot.id,
        status=RESERVATION_CONFIRMED,
        notes=notes,
        reserved_at=now,
    )
    db.session.add(reservation)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Selected time slot is no longer available")

    lesson = Lesson(
        reservation_id=reservation.id,
        teacher_id=teacher_id,
        student_id=student_id,
        scheduled_at=slot.start_time,
        duration_minutes=lesson_duration_minutes(slot.start_time, slot.end_time),
        status=LESSON_PLANNED,
    )
    db.session.add(lesson)

    sync_lesson_counters(teacher_id, student_id)
    db.session.flush()

    log.info("slot %s booked by student %s (reservation %s, lesson %s)", slot.id, student_id, reservation.id, lesson.id)
    return reservation, lesson


def update_lesson(lesson: Lesson, status: str = None, scheduled_at: datetime = None, duration_minutes: int = None):
    """Apply a tutor's edit to a lesson, keeping the reservation, slot and counters in step."""
    if status is not None and status != lesson.status:
        if lesson.status != LESSON_PLANNED:
            raise ConflictError(
                f"Lesson is already {lesson.status}",
                details={"current_status": lesson.status, "requested_status": status},
            )
        if status not in _RESERVATION_FOR_LESSON:
            raise ValidationError(f"Cannot move a lesson to {status}")

        reservation = lesson.reservation
        reservation.status = _RESERVATION_FOR_LESSON[status]
        if status == LESSON_CANCELED:
            slot = db.session.get(Slot, reservation.slot_id)
            if slot is not None:
                slot.status = SLOT_CANCELED

        log.info("lesson %s: %s -> %s", lesson.id, lesson.status, status)
        lesson.status = status

    if scheduled_at is not None:
        lesson.scheduled_at = scheduled_at
    if duration_minutes is not None:
        lesson.duration_minutes = duration_minutes

    sync_lesson_counters(lesson.teacher_id, lesson.student_id)
    return lesson
