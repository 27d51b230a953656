import os
import random
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure project root is on sys.path when pytest runs from a different CWD.
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from country_api import models  # noqa: E402
from country_api.config import settings  # noqa: E402
from country_api.database import get_db  # noqa: E402
from country_api.main import app  # noqa: E402
from country_api.routes.countries import get_rng  # noqa: E402

COUNTRIES_URL = "https://countries.test/v2/all"
RATES_URL = "https://rates.test/v6/latest/USD"


class DummyResponse:
    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code

    def json(self):
        if isinstance(self._data, Exception):
            raise self._data
        return self._data


@pytest.fixture
def session_factory():
    # StaticPool keeps a single in-memory DB across threads/requests
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "CACHE_DIR", tmp_path / "cache")
    monkeypatch.setattr(settings, "COUNTRY_API", COUNTRIES_URL)
    monkeypatch.setattr(settings, "EXCHANGE_API", RATES_URL)
    return settings


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def client(session_factory, rng):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_rng] = lambda: rng
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upstream(monkeypatch):
    """Serve canned upstream responses through ``requests.get``.

    Tests mutate ``upstream.countries``/``upstream.rates`` and the status codes
    before calling the refresh.
    """

    class Upstream:
        countries = []
        rates = {}
        countries_status = 200
        rates_status = 200
        calls = []

    state = Upstream()
    state.calls = []

    def fake_get(url, timeout=None):
        state.calls.append((url, timeout))
        if url == COUNTRIES_URL:
            return DummyResponse(state.countries, state.countries_status)
        if url == RATES_URL:
            return DummyResponse({"result": "success", "rates": state.rates}, state.rates_status)
        raise RuntimeError(f"Unexpected URL {url}")

    monkeypatch.setattr("requests.get", fake_get)
    return state
