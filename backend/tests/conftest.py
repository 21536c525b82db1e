import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from intake.config import settings
from intake.database import get_db
from intake.dependencies import get_content_store, get_url_issuer
from intake.main import app
from intake.services.content_store import LocalContentStore
from intake.services.signed_urls import SignedUrlIssuer


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def tmp_data(tmp_path):
    data_path = tmp_path / "IntakeData"
    data_path.mkdir()
    return data_path


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "db.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    from intake.database import init_db
    init_db(db_path)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def db(test_db):
    session = test_db()
    yield session
    session.close()


@pytest.fixture
def content_store(tmp_data):
    return LocalContentStore(
        root=tmp_data / "objects",
        secret="test-signing-secret",
        base_url="http://testserver/api/v1/objects",
    )


@pytest.fixture
def url_issuer(content_store):
    return SignedUrlIssuer(content_store, expires_in=3600)


@pytest.fixture
def client(tmp_data, test_db, content_store, url_issuer):
    original_data_path = settings.data_path
    settings.data_path = tmp_data
    app.dependency_overrides[get_content_store] = lambda: content_store
    app.dependency_overrides[get_url_issuer] = lambda: url_issuer
    c = TestClient(app)
    yield c
    settings.data_path = original_data_path
