import logging
import re
import secrets
from datetime import datetime, timedelta

from flask import Blueprint, jsonify, current_app, g

from models import db
from models.password_reset import PasswordResetToken
from models.user import User, TeacherProfile, ROLES, ROLE_TUTOR
from security.bruteforce import is_locked, register_failure, reset_attempts
from security.csrf import issue_csrf_token
from security.password import hash_password, verify_password
from security.password_policy import validate_password
from security.session import (
    create_session,
    revoke_session,
    revoke_all_sessions,
    set_session_cookie,
    clear_session_cookie,
    raw_token_from_request,
    hash_token,
)
from utils.aggregates import get_or_create_pair
from utils.audit import log_event
from utils.auth_context import login_required
from utils.emailer import send_email
from utils.errors import ValidationError, UnauthorizedError, ConflictError, error_response
from utils.validation import json_body, optional_str

log = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and len(email) <= 255 and bool(_EMAIL.match(email))


def _user_payload(user: User) -> dict:
    payload = {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "created_at": user.created_at.isoformat(),
    }
    if user.is_tutor and user.teacher_profile is not None:
        payload["bio"] = user.teacher_profile.bio
        payload["description"] = user.teacher_profile.description
    return payload


@auth_bp.post("/register")
def register():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    first_name = (data.get("first_name") or "").strip()
    last_name = (data.get("last_name") or "").strip()
    role = data.get("role")
    teacher_id = data.get("teacher_id")

    errors = []
    if not _is_valid_email(email):
        errors.append("Invalid email")
    _, password_errors = validate_password(password, data.get("confirm_password") or "")
    errors.extend(password_errors)
    if len(first_name) < 2:
        errors.append("First name must be at least 2 characters")
    if len(last_name) < 2:
        errors.append("Last name must be at least 2 characters")
    if role not in ROLES:
        errors.append("Role must be tutor or student")
    if errors:
        raise ValidationError("Registration data is invalid", details=errors)

    inviting_teacher = None
    if teacher_id is not None:
        if isinstance(teacher_id, int) and not isinstance(teacher_id, bool):
            inviting_teacher = db.session.get(User, teacher_id)
        if inviting_teacher is None or not inviting_teacher.is_tutor:
            raise ValidationError("Invitation link is invalid or expired")

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        raise ConflictError("Email already registered")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    db.session.add(user)
    db.session.flush()

    if role == ROLE_TUTOR:
        db.session.add(TeacherProfile(teacher_id=user.id))
    elif inviting_teacher is not None:
        get_or_create_pair(inviting_teacher.id, user.id)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role, "invited_by": teacher_id})
    log.info("registered %s user %s", role, user.id)

    return jsonify(message="Registered successfully", user=_user_payload(user)), 201


@auth_bp.post("/login")
def login():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")

    locked, seconds_left = is_locked(email)
    if locked:
        log_event("LOGIN_LOCKED", metadata={"email": email, "seconds_left": seconds_left})
        return error_response(
            429, "Too many requests", "Account temporarily locked. Try again later.",
            details={"retry_after_seconds": seconds_left},
        )

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        fail_count, locked_now = register_failure(email)
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            metadata={"email": email, "fail_count": fail_count, "locked_now": locked_now},
        )
        if locked_now:
            return error_response(
                429, "Too many requests", "Too many failed attempts. Account locked.",
                details={"lockout_minutes": current_app.config.get("LOCKOUT_MINUTES", 5)},
            )
        raise UnauthorizedError("Invalid email or password")

    reset_attempts(email)

    # rotate: one live session per user
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    user.last_login_at = datetime.utcnow()
    db.session.commit()

    resp = jsonify(message="Login OK", user=_user_payload(user))
    set_session_cookie(resp, raw_token)
    issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(raw_token_from_request())
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    clear_session_cookie(resp)
    return resp, 200


@auth_bp.get("/user")
@login_required
def current_user():
    return jsonify(user=_user_payload(g.user)), 200


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(_user_payload(g.user)), 200


@auth_bp.post("/profile")
@login_required
def update_profile():
    data = json_body()
    user = g.user

    for field in ("first_name", "last_name"):
        value = optional_str(data, field, max_len=120)
        if value is None:
            continue
        if len(value) < 2:
            raise ValidationError(f"{field} must be at least 2 characters")
        setattr(user, field, value)

    if user.is_tutor:
        profile = user.teacher_profile or TeacherProfile(teacher_id=user.id)
        db.session.add(profile)
        if "bio" in data:
            profile.bio = optional_str(data, "bio", max_len=2000)
        if "description" in data:
            profile.description = optional_str(data, "description", max_len=5000)

    db.session.commit()
    log_event("PROFILE_UPDATE", user_id=user.id)
    return jsonify(message="Profile updated", user=_user_payload(user)), 200


@auth_bp.post("/forgot-password")
def forgot_password():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    if not _is_valid_email(email):
        raise ValidationError("Invalid email")

    user = User.query.filter_by(email=email).first()
    if user is not None:
        raw_token = secrets.token_urlsafe(32)
        ttl = current_app.config.get("PASSWORD_RESET_TTL_SECONDS", 3600)
        db.session.add(PasswordResetToken(
            user_id=user.id,
            token_hash=hash_token(raw_token),
            expires_at=datetime.utcnow() + timedelta(seconds=ttl),
        ))
        db.session.commit()

        link = f"{current_app.config.get('APP_PUBLIC_URL', '').rstrip('/')}/reset-password?token={raw_token}"
        sent, err = send_email(
            user.email,
            "Reset your password",
            f"Hello {user.first_name},\n\nUse this link to set a new password:\n{link}\n\n"
            f"The link expires in {ttl // 60} minutes.",
        )
        log_event("PASSWORD_RESET_REQUEST", user_id=user.id, metadata={"sent": sent, "error": err})

    # same answer whether or not the account exists
    return jsonify(message="If the account exists, a reset link has been sent"), 200


@auth_bp.post("/reset-password")
def reset_password():
    data = json_body()
    token = data.get("token") or ""
    password = data.get("password") or ""

    valid, errors = validate_password(password, data.get("confirm_password") or "")
    if not valid:
        raise ValidationError("Password does not meet policy", details=errors)

    row = PasswordResetToken.query.filter_by(token_hash=hash_token(token)).first() if token else None
    if row is None or row.used_at is not None or row.expires_at <= datetime.utcnow():
        raise ValidationError("Password reset link is invalid or expired")

    user = db.session.get(User, row.user_id)
    user.password_hash = hash_password(password)
    row.used_at = datetime.utcnow()
    db.session.commit()

    revoke_all_sessions(user.id)
    log_event("PASSWORD_RESET", user_id=user.id)
    return jsonify(message="Password updated"), 200
