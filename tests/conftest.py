import pytest
from fastapi.testclient import TestClient
from geetha_tex.app import app
from geetha_tex.domain import BatchInput, Settings
from geetha_tex.state import AppStore
from geetha_tex.storage import InMemoryStore
from geetha_tex.utils import get_store


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def batch_input(**overrides):
    fields = {
        "batch_number": "acr001",
        "machine_number": 1,
        "start_date": "2023-10-01",
        "end_date": "2023-10-05",
        "meter_value": 1250.5,
    }
    fields.update(overrides)
    return BatchInput(**fields)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return InMemoryStore()


@pytest.fixture
def store(kv, clock):
    """Store with settings in place and no demo data."""
    s = AppStore(kv, clock=clock)
    s.complete_setup(Settings(company_name="Geetha Tex", number_of_machines=3), seed_demo=False)
    return s


@pytest.fixture
def empty_store(kv, clock):
    """Fresh install: no settings yet."""
    return AppStore(kv, clock=clock)


def _client_for(s):
    app.dependency_overrides[get_store] = lambda: s
    return TestClient(app)


@pytest.fixture
def client(store):
    yield _client_for(store)
    app.dependency_overrides.clear()


@pytest.fixture
def setup_client(empty_store):
    yield _client_for(empty_store)
    app.dependency_overrides.clear()


@pytest.fixture
def make_batch():
    return batch_input
