from datetime import timedelta

from flask import Blueprint, request, jsonify

from models import db
from models.slot import Slot, SLOT_AVAILABLE, SLOT_STATUSES
from models.user import User
from utils.errors import NotFoundError, ValidationError
from utils.validation import parse_day, parse_int_arg

public_bp = Blueprint("public", __name__, url_prefix="/api/public")


@public_bp.get("/tutor/<int:tutor_id>/dates")
def tutor_dates(tutor_id: int):
    """Open calendar of one tutor, for students picking a slot."""
    tutor = db.session.get(User, tutor_id)
    if tutor is None or not tutor.is_tutor:
        raise NotFoundError("Tutor not found")

    status = request.args.get("status") or SLOT_AVAILABLE
    if status not in SLOT_STATUSES:
        raise ValidationError("Invalid status", details={"status": status})

    q = Slot.query.filter_by(teacher_id=tutor.id, status=status)

    date_str = request.args.get("date")
    if date_str:
        day = parse_day(date_str)
        q = q.filter(Slot.start_time >= day, Slot.start_time < day + timedelta(days=1))

    from_str = request.args.get("from_date")
    if from_str:
        q = q.filter(Slot.start_time >= parse_day(from_str, "from_date"))

    q = q.order_by(Slot.start_time.asc())
    limit = parse_int_arg("limit", 0, minimum=0)
    if limit:
        q = q.limit(limit)

    return jsonify(success=True, data=[s.to_dict() for s in q.all()]), 200
