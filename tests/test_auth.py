from conftest import PASSWORD, register, login, make_user
from models.audit_log import AuditLog
from models.user import TeacherProfile
from models import db


def test_register_and_login(app, anon):
    resp = register(anon, "Tutor@Example.com", "tutor")
    assert resp.status_code == 201
    user = resp.get_json()["user"]
    assert user["email"] == "tutor@example.com"
    assert user["role"] == "tutor"

    with app.app_context():
        assert db.session.get(TeacherProfile, user["id"]) is not None

    resp = login(anon, "tutor@example.com")
    assert resp.status_code == 200
    assert anon.get_cookie("tutorslot_session") is not None
    assert anon.get("/api/auth/user").get_json()["user"]["id"] == user["id"]


def test_register_validation(anon):
    resp = anon.post("/api/auth/register", json={
        "email": "nope",
        "password": "short",
        "confirm_password": "other",
        "first_name": "A",
        "last_name": "",
        "role": "admin",
    })
    assert resp.status_code == 400
    details = resp.get_json()["details"]
    assert "Invalid email" in details
    assert "Passwords do not match" in details
    assert "Role must be tutor or student" in details


def test_register_duplicate_email(anon):
    assert register(anon, "dup@example.com", "student").status_code == 201
    resp = register(anon, "dup@example.com", "tutor")
    assert resp.status_code == 409


def test_register_with_invalid_invitation(anon, student):
    resp = register(anon, "new@example.com", "student", teacher_id=student[1]["id"])
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invitation link is invalid or expired"


def test_register_rejects_boolean_invitation(anon, tutor):
    # True == 1, which is the tutor's id
    assert tutor[1]["id"] == 1
    resp = register(anon, "new@example.com", "student", teacher_id=True)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Invitation link is invalid or expired"


def test_wrong_password_and_lockout(app, anon):
    register(anon, "lock@example.com", "student")
    for _ in range(app.config["MAX_LOGIN_ATTEMPTS"] - 1):
        assert login(anon, "lock@example.com", "wrong-password").status_code == 401

    assert login(anon, "lock@example.com", "wrong-password").status_code == 429
    # still locked even with the right password
    assert login(anon, "lock@example.com", PASSWORD).status_code == 429

    with app.app_context():
        assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == app.config["MAX_LOGIN_ATTEMPTS"]


def test_csrf_required_for_session_writes(app, tutor):
    client, _ = tutor
    del client.environ_base["HTTP_X_CSRF_TOKEN"]
    resp = client.post("/api/dates", json={"start_time": "2030-01-01T10:00:00Z", "end_time": "2030-01-01T11:00:00Z"})
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "CSRF validation failed"


def test_logout_revokes_session(tutor):
    client, _ = tutor
    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/auth/user").status_code == 401


def test_new_login_revokes_older_session(app, tutor):
    first, _ = tutor
    second = app.test_client()
    assert login(second, "tutor@example.com").status_code == 200
    assert first.get("/api/auth/user").status_code == 401
    assert second.get("/api/auth/user").status_code == 200


def test_password_reset_flow(app, anon, monkeypatch):
    sent = []
    monkeypatch.setattr("routes.auth.send_email", lambda to, subject, body: sent.append(body) or (True, None))

    register(anon, "reset@example.com", "student")
    assert anon.post("/api/auth/forgot-password", json={"email": "reset@example.com"}).status_code == 200
    assert anon.post("/api/auth/forgot-password", json={"email": "ghost@example.com"}).status_code == 200
    assert len(sent) == 1

    token = sent[0].split("token=")[1].split()[0]
    new_password = "brand-new-pass"
    resp = anon.post("/api/auth/reset-password", json={
        "token": token, "password": new_password, "confirm_password": new_password,
    })
    assert resp.status_code == 200

    # single use
    resp = anon.post("/api/auth/reset-password", json={
        "token": token, "password": new_password, "confirm_password": new_password,
    })
    assert resp.status_code == 400

    assert login(anon, "reset@example.com").status_code == 401
    assert login(anon, "reset@example.com", new_password).status_code == 200


def test_profile_update(student):
    client, _ = student
    resp = client.post("/api/auth/profile", json={"first_name": "Stanisław"})
    assert resp.status_code == 200
    assert client.get("/api/auth/profile").get_json()["first_name"] == "Stanisław"
    assert client.post("/api/auth/profile", json={"last_name": "X"}).status_code == 400
