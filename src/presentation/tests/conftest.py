"""HTTP test configuration.

The app is built from TESTING settings with the in-process store and no
notification channels. ``client.portal`` runs coroutines on the app's loop
so tests can prepare lockout and event state directly.
"""

import pytest
from fastapi.testclient import TestClient

from src.core.config import Settings
from src.core.container import build_security_core
from src.core.enums import Environment
from src.main import create_app

ADMIN_TOKEN = "test-admin-token"


@pytest.fixture
def settings():
    return Settings(
        environment=Environment.TESTING,
        redis_url=None,
        admin_api_token=ADMIN_TOKEN,
        _env_file=None,
    )


@pytest.fixture
def core(settings):
    return build_security_core(settings, channels=[])


@pytest.fixture
def client(core):
    with TestClient(create_app(core=core)) as client:
        yield client


@pytest.fixture
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}
