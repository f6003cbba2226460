import pytest
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["AI_KILL_SWITCH"] = "false"

from rs_credit.database import Base, get_db
from rs_credit.main import app
from rs_credit.schemas.employee import Employee, MonthlyCostRecord
from rs_credit.schemas.project import Project
from rs_credit.services.payroll_extraction import PayslipExtractor, get_extractor
from rs_credit.services.rate_limiter import ExtractionRateLimiter
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

TENANT = "tenant-a"


def _make_engine():
    return create_engine(
        SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

engine = _make_engine()
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    # Use sessionmaker with the active connection
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def isolated_session():
    """
    Session on a private in-memory database, without an outer transaction,
    so commit and rollback behave exactly as in production.
    """
    private_engine = _make_engine()
    Base.metadata.create_all(bind=private_engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=private_engine)()
    yield session
    session.close()
    private_engine.dispose()


class FakeClock:
    """Manual clock; sleep() advances it and records the requested waits."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_extractor(fake_clock):
    """Extractor wired to a fake extraction function and a fake clock."""
    def _make(extract_fn, available=True, requests_per_day=1500):
        limiter = ExtractionRateLimiter(
            requests_per_minute=15,
            requests_per_day=requests_per_day,
            min_interval_seconds=4.5,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )
        return PayslipExtractor(extract_fn=extract_fn, rate_limiter=limiter, ai_available=lambda: available)
    return _make


def make_employee(employee_id="emp_1", name="Mario Rossi", history=None, **kwargs) -> Employee:
    """history: {"MM/YYYY": (hours, hourly_cost)}"""
    monthly = {
        month: MonthlyCostRecord(hours=hours, hourly_cost=hourly, monthly_cost=hours * hourly)
        for month, (hours, hourly) in (history or {}).items()
    }
    return Employee(id=employee_id, name=name, monthly_history=monthly, **kwargs)


def make_project(project_id="proj_a", name="Project A", project_type="ricerca_industriale", **kwargs) -> Project:
    return Project(id=project_id, name=name, project_type=project_type, **kwargs)


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, headers={"X-User-ID": TENANT}) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def override_extractor():
    """Install an extractor for the payslip endpoint."""
    def _install(extractor):
        app.dependency_overrides[get_extractor] = lambda: extractor
    return _install
