import hashlib
import secrets
from datetime import datetime, timedelta

from flask import request, current_app

from models import db
from models.session import Session


def client_ip() -> str:
    return request.headers.get("X-Forwarded-For", request.remote_addr) or "unknown"


def hash_token(token: str) -> str:
    # SHA-256 is enough for random, high-entropy tokens
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _cookie_name() -> str:
    return current_app.config.get("AUTH_COOKIE_NAME", "tutorslot_session")


def create_session(user_id: int) -> str:
    """
    Creates a server-side session and returns the RAW token (to set as cookie).
    Only the hash is stored in DB.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)
    now = datetime.utcnow()

    row = Session(
        user_id=user_id,
        token_hash=hash_token(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=lifetime),
        ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:255],
    )
    db.session.add(row)
    db.session.commit()
    return raw_token


def set_session_cookie(resp, raw_token: str):
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 28800),
        path="/",
    )
    return resp


def clear_session_cookie(resp):
    resp.delete_cookie(_cookie_name(), path="/")
    return resp


def raw_token_from_request():
    return request.cookies.get(_cookie_name())


def get_session_from_request():
    raw_token = raw_token_from_request()
    if not raw_token:
        return None

    now = datetime.utcnow()
    sess = Session.query.filter_by(token_hash=hash_token(raw_token), revoked=False).first()
    if not sess:
        return None

    # Absolute expiry
    if sess.expires_at <= now:
        return None

    # Idle timeout
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1800)
    last_seen = sess.last_seen_at or sess.created_at
    if last_seen + timedelta(seconds=idle_seconds) <= now:
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token: str) -> bool:
    if not raw_token:
        return False
    sess = Session.query.filter_by(token_hash=hash_token(raw_token)).first()
    if not sess:
        return False
    sess.revoked = True
    db.session.commit()
    return True


def revoke_all_sessions(user_id: int) -> int:
    count = (
        Session.query
        .filter_by(user_id=user_id, revoked=False)
        .update({Session.revoked: True}, synchronize_session=False)
    )
    db.session.commit()
    return count
