from datetime import datetime
from models.db import db

RESERVATION_CONFIRMED = "confirmed"
RESERVATION_CANCELED = "canceled"
RESERVATION_COMPLETED = "completed"


class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    slot_id = db.Column(db.Integer, db.ForeignKey("slots.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=RESERVATION_CONFIRMED)
    notes = db.Column(db.Text, nullable=True)
    reserved_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # a slot is reserved at most once
        db.UniqueConstraint("slot_id", name="uq_reservation_slot_once"),
    )
