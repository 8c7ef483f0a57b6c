"""Test configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from thesis_tracker.auth import ActorContext, create_access_token
from thesis_tracker.database import build_engine, create_tables
from thesis_tracker.main import create_app
from thesis_tracker.models import Student, UserRole
from thesis_tracker.services import WorkflowEngine

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

STUDENT_ID = 1001
OTHER_STUDENT_ID = 1002
SUPERVISOR_ID = 10


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingChannel:
    """Delivery channel that keeps what it was handed, or fails on demand."""

    def __init__(self):
        self.delivered = []
        self.fail = False

    def deliver(self, notification):
        if self.fail:
            raise RuntimeError("channel down")
        self.delivered.append(notification)

    def types_for(self, recipient_id):
        return [n.type for n in self.delivered if n.recipient_id == recipient_id]


@pytest.fixture
def engine(tmp_path):
    """File-based SQLite database, fresh for every test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'workflow.db'}", echo=False)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Create test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def workflow(engine, clock, channel):
    return WorkflowEngine(engine, clock=clock, channel=channel)


# Actors

@pytest.fixture
def admin():
    return ActorContext(actor_id=1, role=UserRole.admin)


@pytest.fixture
def supervisor():
    return ActorContext(actor_id=SUPERVISOR_ID, role=UserRole.supervisor)


@pytest.fixture
def evaluator():
    return ActorContext(actor_id=20, role=UserRole.evaluation_committee)


@pytest.fixture
def fyp_committee():
    return ActorContext(actor_id=30, role=UserRole.fyp_committee)


@pytest.fixture
def student():
    return ActorContext(actor_id=STUDENT_ID, role=UserRole.student)


@pytest.fixture
def other_student():
    return ActorContext(actor_id=OTHER_STUDENT_ID, role=UserRole.student)


@pytest.fixture
def roster(workflow, admin):
    """Two enrolled students sharing one supervisor."""
    return [
        workflow.enroll_student(STUDENT_ID, admin, name="Ayesha Khan", supervisor_id=SUPERVISOR_ID),
        workflow.enroll_student(OTHER_STUDENT_ID, admin, name="Bilal Ahmed", supervisor_id=SUPERVISOR_ID),
    ]


@pytest.fixture
def sample_student(db_session):
    """Create a roster entry directly through the ORM."""
    student = Student(id=STUDENT_ID, name="Ayesha Khan", supervisor_id=SUPERVISOR_ID)
    db_session.add(student)
    db_session.commit()
    db_session.refresh(student)
    return student


# HTTP

@pytest.fixture
def app(engine, clock, channel):
    return create_app(bind=engine, clock=clock, channel=channel, sweep_interval_seconds=0)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers():
    """Build a bearer header for an actor."""
    def _headers(actor: ActorContext):
        token = create_access_token(actor.actor_id, actor.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers
