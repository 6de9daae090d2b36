import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.testclient import TestClient

from hooklab.config import Settings
from hooklab.database import get_db
from hooklab.main import create_app
from hooklab.models import Base
from tests.helpers.llm import FakeLLMClient


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory SQLite DB per test."""
    engine = create_engine(
        f"sqlite:///file:testdb_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def fake_llm():
    """LLM stand-in that records prompts."""
    return FakeLLMClient()


@pytest.fixture(scope="function")
def app(db_engine, fake_llm):
    """Create a FastAPI app with isolated DB and fake LLM per test."""
    application = create_app(settings=Settings(), llm_client=fake_llm)
    SessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app):
    """HTTP test client."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Raw DB session for direct inspection/insertion."""
    SessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    db = SessionLocal()
    yield db
    db.close()
