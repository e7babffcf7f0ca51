from .db import db
from .user import User, TeacherProfile
from .audit_log import AuditLog
from .error_log import ErrorLog
from .session import Session
from .login_attempt import LoginAttempt
from .password_reset import PasswordResetToken
from .slot import Slot
from .reservation import Reservation
from .lesson import Lesson
from .teacher_student import TeacherStudent
