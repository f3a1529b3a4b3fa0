import os
from unittest.mock import patch

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CONFLUENCE_BASE_URL", "https://wiki.example.com")
os.environ.setdefault("DOCUMENT_SERVICE_URL", "http://document-service.local")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from doc_registry import models  # noqa: E402,F401
from doc_registry.api.deps import get_db  # noqa: E402
from doc_registry.db import Base  # noqa: E402
from doc_registry.main import app  # noqa: E402
from doc_registry.models import Control, Person  # noqa: E402
from doc_registry.services.common import Actor  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def cache_delay():
    with patch("doc_registry.tasks.cache.invalidate_document_cache.delay") as mock_delay:
        yield mock_delay


@pytest.fixture()
def person(db_session):
    person = Person(display_name="Dana Owner", email="dana@example.com")
    db_session.add(person)
    db_session.commit()
    db_session.refresh(person)
    return person


@pytest.fixture()
def other_person(db_session):
    person = Person(display_name="Sam Reviewer", email="sam@example.com")
    db_session.add(person)
    db_session.commit()
    db_session.refresh(person)
    return person


@pytest.fixture()
def actor(person):
    return Actor(id=person.id, email=person.email)


@pytest.fixture()
def control(db_session):
    control = Control(code="A.5.1", title="Policies for information security")
    db_session.add(control)
    db_session.commit()
    db_session.refresh(control)
    return control


@pytest.fixture()
def client(db_session):
    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers(person):
    return {"X-Actor-Id": str(person.id), "X-Actor-Email": person.email}

