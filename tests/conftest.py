"""
Shared test fixtures

Environment is set before the application is imported so settings and the
engine pick up the SQLite test database.
"""

import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["CORS_ORIGINS"] = "http://localhost:3000"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from training_hub.main import app
from training_hub.config.database import Base, get_db
from training_hub.models.course import Course, TrainingLocation, CostLevel
from training_hub.models.per_diem import DestinationBand, GradeBand
from training_hub.models.user import User, UserRoleAssignment, AppRole
from training_hub.services.auth_service import auth_service
from training_hub.utils.security import get_password_hash

# Test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing"""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture(scope="function")
def test_db():
    """Create test database"""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Factory creating an active user with the employee role plus any extra roles"""
    counter = {"n": 0}

    def _make(username, roles=(), manager=None, grade=None, entity_id="HQ", password="testpass123"):
        counter["n"] += 1
        user = User(
            email=f"{username}@acme.com",
            username=username,
            full_name=username.replace("_", " ").title(),
            employee_number=f"EMP{counter['n']:03d}",
            hashed_password=get_password_hash(password),
            grade=grade,
            entity_id=entity_id,
            manager_id=manager.id if manager else None,
            is_active=True
        )
        for role in set(roles) | {AppRole.EMPLOYEE}:
            user.role_assignments.append(UserRoleAssignment(role=role))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def org(make_user):
    """Employee reporting to a manager, plus one HRBP, L&D and CHRO user"""
    chro = make_user("chro", roles=[AppRole.CHRO], grade=18)
    l_and_d = make_user("learning", roles=[AppRole.L_AND_D], grade=14)
    hrbp = make_user("hrbp", roles=[AppRole.HRBP], grade=12)
    manager = make_user("manager", roles=[AppRole.MANAGER], grade=10)
    employee = make_user("employee", manager=manager, grade=5)

    class Org:
        pass

    result = Org()
    result.chro = chro
    result.l_and_d = l_and_d
    result.hrbp = hrbp
    result.manager = manager
    result.employee = employee
    return result


@pytest.fixture
def courses(db):
    local = Course(code="LOC-1", title="Local Workshop", training_location=TrainingLocation.LOCAL, cost_level=CostLevel.LOW)
    abroad = Course(code="ABR-1", title="Conference Abroad", training_location=TrainingLocation.ABROAD, cost_level=CostLevel.MEDIUM)
    db.add_all([local, abroad])
    db.commit()
    db.refresh(local)
    db.refresh(abroad)
    return {"local": local, "abroad": abroad}


@pytest.fixture
def rates(db):
    """Germany at 100 EUR/day and a x1.5 grade band for grades 10-15"""
    germany = DestinationBand(
        country="Germany",
        band="A",
        currency="EUR",
        training_daily_rate=100.0,
        valid_from=date(2020, 1, 1),
        is_active=True
    )
    senior = GradeBand(band_name="Senior", grade_from=10, grade_to=15, multiplier=1.5, is_active=True)
    db.add_all([germany, senior])
    db.commit()
    db.refresh(germany)
    db.refresh(senior)
    return {"germany": germany, "senior": senior}


def auth_headers(user):
    """Bearer header for a user, without going through the login endpoint"""
    tokens = auth_service.create_tokens(user)
    return {"Authorization": f"Bearer {tokens['access_token']}"}
