# tests/conftest.py

import os
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")

from main import app
from app.database import get_db
from app.models.all_models import (
    Base,
    DriveStatus,
    Gender,
    Student,
    User,
    UserRole,
    Vaccination,
    VaccinationDrive,
    VaccinationStatus,
)
from app.services.vaccination_engine import VaccinationEngine
from app.utils.auth import get_current_user, get_password_hash

# Fixed "today" for engine-level tests
TODAY = date(2026, 3, 2)


@pytest.fixture
def db_engine():
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def vaccination_engine(db_session, today):
    return VaccinationEngine(db_session, today=lambda: today)


@pytest.fixture
def admin_user(db_session):
    user = User(
        username="admin",
        email="admin@school.edu",
        full_name="Health Coordinator",
        password_hash=get_password_hash("admin123"),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def anon_client(db_session):
    """Client with the test database but real authentication"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client(anon_client, admin_user):
    """Client logged in as the admin user"""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    return anon_client


@pytest.fixture
def make_student(db_session):
    """Insert a student directly into the registry"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        fields = dict(
            name=f"Student {counter['n']}",
            class_name="8",
            section="A",
            roll_number=f"80{counter['n']:02d}",
            age=13,
            gender=Gender.FEMALE,
        )
        fields.update(overrides)
        student = Student(**fields)
        db_session.add(student)
        db_session.commit()
        db_session.refresh(student)
        return student

    return _make


@pytest.fixture
def make_drive(db_session, today):
    """Insert a drive directly, bypassing the scheduling rules"""
    def _make(**overrides):
        fields = dict(
            name="MMR Drive",
            date=today + timedelta(days=20),
            vaccine_name="MMR",
            total_doses=10,
            used_doses=0,
            target_classes=["8"],
            status=DriveStatus.SCHEDULED,
        )
        fields.update(overrides)
        drive = VaccinationDrive(**fields)
        db_session.add(drive)
        db_session.commit()
        db_session.refresh(drive)
        return drive

    return _make


@pytest.fixture
def add_vaccination(db_session):
    """Attach a vaccination entry to a student without touching drive counters"""
    def _add(student, drive, status=VaccinationStatus.COMPLETED, on=None):
        student.vaccinations.append(Vaccination(
            drive_id=drive.id,
            vaccine_name=drive.vaccine_name,
            date=on or drive.date,
            status=status,
        ))
        db_session.commit()
        db_session.refresh(student)
        return student

    return _add


# Pytest configuration
def pytest_configure(config):
    config.addinivalue_line("markers", "api: tests that go through the HTTP layer")
