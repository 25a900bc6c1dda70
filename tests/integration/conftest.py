"""
Integration test fixtures. Overrides get_db for API tests with the in-memory
DB that the root conftest factories seed, so the app and the test see the
same rows.
"""
import pytest
from sqlalchemy.orm import sessionmaker


@pytest.fixture
def override_get_db(in_memory_engine, db_session):
    """Session factory bound to the test engine (db_session creates the schema)."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)

    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override."""
    from fastapi.testclient import TestClient
    from assessment.api import app
    from assessment.config import get_db
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(api_client, learner):
    """API client carrying an access_token cookie for the learner fixture."""
    from assessment.schemas.auth_schemas import AuthTokenPayload
    from assessment.utils.jwt import create_access_token
    api_client.cookies.set("access_token", create_access_token(AuthTokenPayload(sub=learner.email)))
    return api_client
