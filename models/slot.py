from datetime import datetime
from models.db import db

SLOT_AVAILABLE = "available"
SLOT_BOOKED = "booked"
SLOT_CANCELED = "canceled"
SLOT_OTHER = "other"
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_BOOKED, SLOT_CANCELED, SLOT_OTHER)


class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    teacher_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    title = db.Column(db.String(160), nullable=True)
    description = db.Column(db.Text, nullable=True)

    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    status = db.Column(db.String(20), nullable=False, default=SLOT_AVAILABLE, index=True)
    additional_info = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "student_id": self.student_id,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "status": self.status,
            "additional_info": self.additional_info,
        }
