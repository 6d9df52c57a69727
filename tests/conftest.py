import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_admin import db, seed
from school_admin.main import app, get_db


@pytest.fixture
def engine():
    # one shared in-memory database per test
    eng = db.make_engine("sqlite://", poolclass=StaticPool)
    db.init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def demo_client(client, session):
    seed.seed_demo(session)
    # the in-memory database has one connection; release it for the client
    session.close()
    return client
