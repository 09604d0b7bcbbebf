from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ticketing.core.database import Base, create_db_engine
from ticketing.core.deps import get_db
from ticketing.main import app
from ticketing.models import Category, TicketPriority, User
from ticketing.schemas.ticket import TicketCreate
from ticketing.schemas.user import ActorContext
from ticketing.services import tickets


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    users = {
        "admin": User(email="admin@example.com", first_name="Ada", last_name="Admin", role="admin"),
        "agent": User(email="agent@example.com", first_name="Alan", last_name="Agent", role="agent"),
        "other": User(email="other@example.com", first_name="Olga", last_name="Other", role="agent"),
        "customer": User(email="cust@example.com", first_name="Cora", last_name="Customer", role="customer"),
        "inactive": User(email="gone@example.com", first_name="Gus", last_name="Gone", role="agent", is_active=False),
    }
    priorities = {
        "low": TicketPriority(name="Low", sort_order=3),
        "high": TicketPriority(name="High", sort_order=1),
        "medium": TicketPriority(name="Medium", sort_order=2),
        "retired": TicketPriority(name="Retired", sort_order=9, is_active=False),
    }
    categories = {
        "network": Category(name="Network"),
        "hardware": Category(name="Hardware"),
        "software": Category(name="Software"),
        "legacy": Category(name="Legacy", is_active=False),
    }
    db.add_all([*users.values(), *priorities.values(), *categories.values()])
    db.commit()
    return SimpleNamespace(
        users={key: user.id for key, user in users.items()},
        priorities={key: priority.id for key, priority in priorities.items()},
        categories={key: category.id for key, category in categories.items()},
    )


@pytest.fixture
def actor(seed):
    return ActorContext(id=seed.users["admin"], role="admin", ip_address="10.0.0.1")


@pytest.fixture
def customer(seed):
    return ActorContext(id=seed.users["customer"], role="customer")


@pytest.fixture
def make_ticket(db, seed, actor):
    def _make(**overrides):
        acting = overrides.pop("actor", actor)
        payload = {
            "subject": "Printer on fire",
            "description": "It stopped working this morning.",
            "requester_phone": "+1 555 0100",
            "requester_email": "requester@example.com",
            "requester_name": "Rita Requester",
            "priority_id": seed.priorities["low"],
        }
        payload.update(overrides)
        return tickets.create_ticket(db, TicketCreate(**payload), acting)

    return _make


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def headers(seed):
    return {"X-Actor-Id": seed.users["admin"]}
