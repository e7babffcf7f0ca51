from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db

PASSWORD = "lesson-pass-1"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def anon(app):
    return app.test_client()


def future(days=2, hour=10, minute=0):
    """ISO timestamp ``days`` from now at a fixed UTC wall-clock time."""
    base = (datetime.utcnow() + timedelta(days=days)).replace(hour=hour, minute=minute, second=0, microsecond=0)
    return base.isoformat() + "Z"


def register(client, email, role, first_name="Anna", last_name="Nowak", teacher_id=None):
    payload = {
        "email": email,
        "password": PASSWORD,
        "confirm_password": PASSWORD,
        "first_name": first_name,
        "last_name": last_name,
        "role": role,
    }
    if teacher_id is not None:
        payload["teacher_id"] = teacher_id
    return client.post("/api/auth/register", json=payload)


def login(client, email, password=PASSWORD):
    resp = client.post("/api/auth/login", json={"email": email, "password": password})
    if resp.status_code == 200:
        client.environ_base["HTTP_X_CSRF_TOKEN"] = client.get_cookie("csrf_token").value
    return resp


def make_user(app, email, role, **kwargs):
    """Register and log in; returns ``(client, user_dict)``."""
    client = app.test_client()
    resp = register(client, email, role, **kwargs)
    assert resp.status_code == 201, resp.get_json()
    resp = login(client, email)
    assert resp.status_code == 200, resp.get_json()
    return client, resp.get_json()["user"]


def create_slot(client, start, end, **extra):
    resp = client.post("/api/dates", json={"start_time": start, "end_time": end, **extra})
    return resp


@pytest.fixture
def tutor(app):
    return make_user(app, "tutor@example.com", "tutor", first_name="Teresa", last_name="Kowalska")


@pytest.fixture
def student(app):
    return make_user(app, "student@example.com", "student", first_name="Stefan", last_name="Lis")


@pytest.fixture
def slot_id(tutor):
    client, _ = tutor
    resp = create_slot(client, future(hour=10), future(hour=11))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["id"]


@pytest.fixture
def booking(tutor, student, slot_id):
    client, _ = student
    resp = client.post("/api/bookings", json={"date_id": slot_id, "teacher_id": tutor[1]["id"]})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]
