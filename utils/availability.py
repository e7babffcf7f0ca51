"""Overlap checks for a tutor's availability slots.

Slots are half-open intervals ``[start, end)``. Canceled slots never block
anything, so a tutor may publish a new slot over a canceled one.
"""
import logging
from datetime import datetime

from models import db
from models.slot import Slot, SLOT_CANCELED
from models.user import User
from utils.errors import ConflictError

log = logging.getLogger(__name__)


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # touching intervals (end_a == start_b) do not overlap
    return start_a < end_b and start_b < end_a


def conflicting_slots(teacher_id: int, start: datetime, end: datetime, exclude_id: int = None):
    q = Slot.query.filter(
        Slot.teacher_id == teacher_id,
        Slot.status != SLOT_CANCELED,
        Slot.start_time < end,
        Slot.end_time > start,
    )
    if exclude_id is not None:
        q = q.filter(Slot.id != exclude_id)
    return q.order_by(Slot.start_time.asc()).all()


def has_conflict(teacher_id: int, start: datetime, end: datetime, exclude_id: int = None) -> bool:
    return len(conflicting_slots(teacher_id, start, end, exclude_id)) > 0


def lock_teacher_calendar(teacher_id: int):
    """Row-lock the tutor so slot writes for one tutor run one at a time.

    The lock is held until the caller commits. SQLite has no row locks, so
    there the call is a plain read.
    """
    return db.session.query(User).filter_by(id=teacher_id).with_for_update().one()


def ensure_no_conflict(teacher_id: int, start: datetime, end: datetime, exclude_id: int = None, message: str = None):
    lock_teacher_calendar(teacher_id)
    clashes = conflicting_slots(teacher_id, start, end, exclude_id)
    if clashes:
        log.info("slot [%s, %s) for teacher %s clashes with %s", start, end, teacher_id, [s.id for s in clashes])
        raise ConflictError(
            message or "Time slot conflicts with existing date",
            details={"conflicting_ids": [s.id for s in clashes]},
        )
