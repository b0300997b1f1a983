import os

# Settings are read at import time; pin them before the app is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SOCIAL_STORE", "memory")
os.environ.setdefault("REDIS_URL", "redis://127.0.0.1:1/0")
os.environ.setdefault("OTEL_ENABLED", "false")

import pytest  # noqa: E402
from app.api.deps import get_social_store  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base  # noqa: E402
from app.services.social.memory_store import InMemorySocialStore  # noqa: E402
from app.services.social.side_effects import SideEffectRunner  # noqa: E402
from app.services.social.sql_store import SqlSocialStore  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402


@pytest.fixture()
def engine(tmp_path):
    # File-backed: store calls run on worker threads with their own connections.
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'social.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def sql_store(session_factory):
    return SqlSocialStore(session_factory, in_batch_size=2)


@pytest.fixture()
def memory_store():
    return InMemorySocialStore()


@pytest.fixture()
def runner():
    return SideEffectRunner(max_pending=50)


@pytest.fixture()
def client(memory_store):
    app.dependency_overrides[get_social_store] = lambda: memory_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(user_id: str = "user-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
