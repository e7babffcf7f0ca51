from models.db import db


class TeacherStudent(db.Model):
    __tablename__ = "teacher_students"

    teacher_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)

    lessons_completed = db.Column(db.Integer, nullable=False, default=0)
    lessons_reserved = db.Column(db.Integer, nullable=False, default=0)

    teacher = db.relationship("User", foreign_keys=[teacher_id])
    student = db.relationship("User", foreign_keys=[student_id])
