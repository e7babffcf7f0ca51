from datetime import datetime
from models.db import db

ROLE_TUTOR = "tutor"
ROLE_STUDENT = "student"
ROLES = (ROLE_TUTOR, ROLE_STUDENT)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(120), nullable=False)
    last_name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(20), nullable=False, index=True)  # tutor / student

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_login_at = db.Column(db.DateTime, nullable=True)

    teacher_profile = db.relationship("TeacherProfile", back_populates="user", uselist=False)

    @property
    def is_tutor(self) -> bool:
        return self.role == ROLE_TUTOR

    def summary(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
        }


class TeacherProfile(db.Model):
    __tablename__ = "teacher_profiles"

    teacher_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    bio = db.Column(db.Text, nullable=True)
    description = db.Column(db.Text, nullable=True)

    # recomputed from lessons, see utils/aggregates.py
    lessons_completed = db.Column(db.Integer, nullable=False, default=0)
    lessons_planned = db.Column(db.Integer, nullable=False, default=0)

    user = db.relationship("User", back_populates="teacher_profile")
