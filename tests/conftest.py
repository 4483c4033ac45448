import os
import tempfile
from decimal import Decimal

_TMP = tempfile.mkdtemp(prefix="dropdrive_test_")
os.environ.setdefault("DROPDRIVE_SECRET_KEY", "test-secret-key")
os.environ["DROPDRIVE_DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'dropdrive.db')}"
os.environ["DROPDRIVE_STORAGE_PATH"] = os.path.join(_TMP, "storage")
os.environ["DROPDRIVE_AUTH_MODE"] = "dev_pass"
os.environ["DROPDRIVE_DEV_PASSWORD"] = "letmein"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from dropdrive.auth import create_access_token  # noqa: E402
from dropdrive.db import get_session  # noqa: E402
from dropdrive.hierarchy import AuthContext, HierarchyEngine, IncomingFile  # noqa: E402
from dropdrive.storage import LocalBlobStore, get_blob_store  # noqa: E402
from dropdrive.users import provision_user  # noqa: E402


@pytest.fixture
def session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(tmp_path / "storage")


@pytest.fixture
def user(session):
    return provision_user(session, 1001, "Test User", department="QA", total_storage_mb=Decimal("20"))


@pytest.fixture
def ctx(user):
    return AuthContext(user_id=user.id)


@pytest.fixture
def drive(session, blobs):
    return HierarchyEngine(session, blobs)


@pytest.fixture
def make_file():
    def _make(name, size=16, fill=b"x"):
        return IncomingFile.from_bytes(name, fill * size)

    return _make


@pytest.fixture
def client(session, blobs, user):
    from dropdrive.main import app

    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_blob_store] = lambda: blobs
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
