import logging
from datetime import timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.reservation import Reservation, RESERVATION_CONFIRMED
from models.slot import Slot, SLOT_STATUSES, SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CANCELED
from security.rbac import require_role
from utils.audit import log_event
from utils.availability import ensure_no_conflict
from utils.errors import ValidationError, ForbiddenError, NotFoundError, ConflictError
from utils.validation import json_body, parse_timestamp, parse_day, parse_int_arg, optional_str

log = logging.getLogger(__name__)

dates_bp = Blueprint("dates", __name__, url_prefix="/api/dates")


def _parse_status(value, allow_booked=False):
    if value not in SLOT_STATUSES:
        raise ValidationError("Invalid status", details={"status": value, "allowed": list(SLOT_STATUSES)})
    if value == SLOT_BOOKED and not allow_booked:
        raise ValidationError("Dates become booked only through a booking")
    return value


def _parse_additional_info(data: dict):
    info = data.get("additional_info")
    if info is not None and not isinstance(info, dict):
        raise ValidationError("additional_info must be an object")
    return info


def _owned_slot(slot_id: int, action: str) -> Slot:
    slot = db.session.get(Slot, slot_id)
    if slot is None:
        raise NotFoundError("Date not found")
    if slot.teacher_id != g.user.id:
        raise ForbiddenError(f"Insufficient permissions to {action} this date")
    return slot


@dates_bp.get("")
@require_role("tutor")
def list_dates():
    page = parse_int_arg("page", 1, minimum=1)
    limit = parse_int_arg(
        "limit",
        current_app.config.get("PAGE_SIZE_DEFAULT", 10),
        minimum=1,
        maximum=current_app.config.get("PAGE_SIZE_MAX", 100),
    )

    q = Slot.query.filter_by(teacher_id=g.user.id)

    date_str = request.args.get("date")
    if date_str:
        day = parse_day(date_str)
        q = q.filter(Slot.start_time >= day, Slot.start_time < day + timedelta(days=1))

    status = request.args.get("status")
    if status:
        q = q.filter(Slot.status == _parse_status(status, allow_booked=True))

    total = q.count()
    rows = (
        q.order_by(Slot.start_time.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return jsonify(
        data=[s.to_dict() for s in rows],
        pagination={"page": page, "limit": limit, "total": total},
    ), 200


@dates_bp.post("")
@require_role("tutor")
def create_date():
    data = json_body()
    start = parse_timestamp(data.get("start_time"), "start_time")
    end = parse_timestamp(data.get("end_time"), "end_time")
    if end <= start:
        raise ValidationError("End time must be after start time", details={"end_time": data.get("end_time")})

    status = _parse_status(data.get("status") or SLOT_AVAILABLE)
    if status != SLOT_CANCELED:
        ensure_no_conflict(g.user.id, start, end)

    slot = Slot(
        teacher_id=g.user.id,
        student_id=None,
        title=optional_str(data, "title", max_len=160),
        description=optional_str(data, "description"),
        start_time=start,
        end_time=end,
        status=status,
        additional_info=_parse_additional_info(data),
    )
    db.session.add(slot)
    db.session.commit()

    log.info("teacher %s created slot %s [%s, %s)", g.user.id, slot.id, start, end)
    log_event("SLOT_CREATE", user_id=g.user.id, entity="slot", entity_id=slot.id)
    return jsonify(message="Date created successfully", id=slot.id), 201


@dates_bp.put("/<int:slot_id>")
@require_role("tutor")
def update_date(slot_id: int):
    slot = _owned_slot(slot_id, "update")
    data = json_body()

    if Reservation.query.filter_by(slot_id=slot.id).first() is not None:
        raise ConflictError("Date has a reservation and can only change through its lesson")

    start = parse_timestamp(data["start_time"], "start_time") if data.get("start_time") else slot.start_time
    end = parse_timestamp(data["end_time"], "end_time") if data.get("end_time") else slot.end_time
    if end <= start:
        raise ValidationError("End time must be after start time", details={"end_time": end.isoformat()})

    status = _parse_status(data["status"]) if data.get("status") else slot.status

    times_changed = (start, end) != (slot.start_time, slot.end_time)
    reactivated = slot.status == SLOT_CANCELED and status != SLOT_CANCELED
    if status != SLOT_CANCELED and (times_changed or reactivated):
        ensure_no_conflict(
            g.user.id, start, end,
            exclude_id=slot.id,
            message="Updated time slot conflicts with existing date",
        )

    slot.start_time = start
    slot.end_time = end
    slot.status = status
    if "additional_info" in data:
        slot.additional_info = _parse_additional_info(data)
    if "title" in data:
        slot.title = optional_str(data, "title", max_len=160)
    if "description" in data:
        slot.description = optional_str(data, "description")
    db.session.commit()

    log_event("SLOT_UPDATE", user_id=g.user.id, entity="slot", entity_id=slot.id)
    return jsonify(message="Date updated successfully"), 200


@dates_bp.delete("/<int:slot_id>")
@require_role("tutor")
def delete_date(slot_id: int):
    slot = _owned_slot(slot_id, "delete")

    reservations = Reservation.query.filter_by(slot_id=slot.id).all()
    if any(r.status == RESERVATION_CONFIRMED for r in reservations):
        raise ConflictError("Cannot delete date with confirmed reservations")
    if reservations:
        raise ConflictError("Cannot delete date with lesson history")

    db.session.delete(slot)
    db.session.commit()

    log.info("teacher %s deleted slot %s", g.user.id, slot_id)
    log_event("SLOT_DELETE", user_id=g.user.id, entity="slot", entity_id=slot_id)
    return jsonify(message="Date deleted successfully"), 200
