from datetime import datetime, timedelta
from flask import current_app

from models import db
from models.login_attempt import LoginAttempt
from security.session import client_ip


def _attempt_row(email: str):
    return LoginAttempt.query.filter_by(email=email, ip=client_ip()).first()


def is_locked(email: str) -> tuple[bool, int]:
    """
    Returns (locked, seconds_remaining)
    """
    row = _attempt_row(email)
    if not row or not row.locked_until:
        return False, 0

    now = datetime.utcnow()
    if row.locked_until <= now:
        return False, 0

    return True, max(int((row.locked_until - now).total_seconds()), 1)


def register_failure(email: str) -> tuple[int, bool]:
    """
    Increments failure counter. Returns (fail_count, locked_now)
    """
    now = datetime.utcnow()

    row = _attempt_row(email)
    if not row:
        row = LoginAttempt(email=email, ip=client_ip(), fail_count=0)
        db.session.add(row)

    row.fail_count += 1
    row.last_fail_at = now

    locked_now = False
    if row.fail_count >= current_app.config.get("MAX_LOGIN_ATTEMPTS", 5):
        row.locked_until = now + timedelta(minutes=current_app.config.get("LOCKOUT_MINUTES", 5))
        row.fail_count = 0
        locked_now = True

    db.session.commit()
    return row.fail_count, locked_now


def reset_attempts(email: str):
    row = _attempt_row(email)
    if not row:
        return
    row.fail_count = 0
    row.last_fail_at = None
    row.locked_until = None
    db.session.commit()
