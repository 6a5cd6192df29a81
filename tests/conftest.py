from datetime import date, datetime, time

import pytest

from app import create_app
from config import Config
from models import db
from models.tee_time import TeeTime
from models.user import Role, User
from security.password import hash_password
from security.rbac import ADMIN, PLAYER
from services import seasons

PASSWORD = "correct-horse-battery"

# A fixed "now" inside the booking window of OPEN_TEE_TIME
NOW = datetime(2025, 5, 10, 12, 0)


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "test.db")
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"check_same_thread": False, "timeout": 30}}
        AUTO_CREATE_SCHEMA = True
        BCRYPT_ROUNDS = 4
        SMTP_HOST = None
        LEAGUE_TIMEZONE = "America/New_York"

    app = create_app(TestConfig)
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, *role_names, name=None):
    user = User(email=email, password_hash=hash_password(PASSWORD), name=name)
    user.roles = Role.query.filter(Role.name.in_(role_names)).all()
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def player(ctx):
    return make_user("player@example.com", PLAYER, name="Pat Player")


@pytest.fixture
def admin(ctx):
    return make_user("admin@example.com", PLAYER, ADMIN, name="Ada Admin")


@pytest.fixture
def season(ctx):
    created = seasons.create_season(2025, "2025 Season", "2025-05-23", "2025-08-29")
    return seasons.set_active(created.id)


def make_tee_time(day=date(2025, 5, 15), at=time(15, 40), max_slots=4, is_available=True,
                  opens_at=datetime(2025, 5, 9, 1, 0), closes_at=datetime(2025, 5, 13, 22, 0)):
    tee_time = TeeTime(
        date=day,
        time=at,
        season=day.year,
        max_slots=max_slots,
        is_available=is_available,
        booking_opens_at=opens_at,
        booking_closes_at=closes_at,
    )
    db.session.add(tee_time)
    db.session.commit()
    return tee_time


@pytest.fixture
def tee_time(ctx):
    return make_tee_time()


def login(client, email, password=PASSWORD):
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200
    return {"X-CSRF-Token": client.get_cookie("csrf_token").value}
