import pytest
from fastapi.testclient import TestClient

import main
from database import SessionLocal, engine
from identity import IdentityResolver
from models import Base
from server_status import ServerStatusCell
from store import EventStore
from webhook import WebhookProcessor

@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return EventStore(SessionLocal, "wipe_1")


@pytest.fixture
def resolver():
    return IdentityResolver(SessionLocal, "wipe_1")


@pytest.fixture
def client():
    app = main.app
    app.state.server_status = ServerStatusCell(30, 300)
    app.state.processor = WebhookProcessor(
        app.state.store, app.state.resolver, app.state.server_status
    )
    with TestClient(app) as c:
        yield c
