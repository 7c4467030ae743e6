import pytest
import os
from datetime import date
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from leaveflow.database import Base, get_db
from leaveflow.main import app
from leaveflow.models.enums import ActorRole, LeaveType
from leaveflow.repositories.memory import InMemoryLogStore, InMemoryRequestStore
from leaveflow.schemas.request import Actor, LeavePayload, OvertimePayload
from leaveflow.services.workflow import RequestWorkflowService
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite does not emit BEGIN itself, so SAVEPOINT/rollback isolation needs
# SQLAlchemy's documented recipe to take over transaction control.
@event.listens_for(engine, "connect")
def _sqlite_disable_autobegin(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _sqlite_emit_begin(conn):
    conn.exec_driver_sql("BEGIN")

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    join_transaction_mode="create_savepoint",
)


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
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def client(db_session):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# --- Actors ---

@pytest.fixture
def employee():
    return Actor(id="emp-1", role=ActorRole.EMPLOYEE, team_id="team-a", department_name="Engineering")


@pytest.fixture
def other_employee():
    return Actor(id="emp-2", role=ActorRole.EMPLOYEE, team_id="team-b", department_name="Sales")


@pytest.fixture
def supervisor():
    return Actor(id="sup-1", role=ActorRole.SUPERVISOR, team_id="team-a", department_name="Engineering")


@pytest.fixture
def foreign_supervisor():
    return Actor(id="sup-2", role=ActorRole.SUPERVISOR, team_id="team-b", department_name="Sales")


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=ActorRole.ADMIN)


# --- Payloads ---

@pytest.fixture
def leave_payload():
    return LeavePayload(
        leave_type=LeaveType.VACATION,
        start_date=date(2024, 1, 10),
        end_date=date(2024, 1, 12),
        reason="Family trip",
    )


@pytest.fixture
def overtime_payload():
    return OvertimePayload(
        work_date=date(2024, 1, 10),
        start_time="22:00",
        end_time="02:00",
        reason="Release night",
    )


# --- Services ---

@pytest.fixture
def request_store():
    return InMemoryRequestStore()


@pytest.fixture
def log_store():
    return InMemoryLogStore()


@pytest.fixture
def workflow(request_store, log_store):
    return RequestWorkflowService(request_store, log_store, retry_attempts=3)


@pytest.fixture
def actor_headers():
    """Helper fixture building gateway headers for an actor."""
    def _headers(actor: Actor):
        headers = {"X-Actor-Id": actor.id, "X-Actor-Role": actor.role.value}
        if actor.team_id:
            headers["X-Actor-Team-Id"] = actor.team_id
        if actor.department_name:
            headers["X-Actor-Department"] = actor.department_name
        return headers
    return _headers
