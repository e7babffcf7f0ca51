from models.db import db

LESSON_PLANNED = "planned"
LESSON_COMPLETED = "completed"
LESSON_CANCELED = "canceled"
LESSON_STATUSES = (LESSON_PLANNED, LESSON_COMPLETED, LESSON_CANCELED)


class Lesson(db.Model):
    __tablename__ = "lessons"

    id = db.Column(db.Integer, primary_key=True)

    reservation_id = db.Column(db.Integer, db.ForeignKey("reservations.id"), nullable=False, unique=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    scheduled_at = db.Column(db.DateTime, nullable=False, index=True)
    duration_minutes = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=LESSON_PLANNED, index=True)

    reservation = db.relationship("Reservation")
