from contextlib import ExitStack

import pytest
from fastapi.testclient import TestClient

from cerbero.config import Settings
from cerbero.main import create_app


@pytest.fixture
def root_dir(tmp_path):
    root = tmp_path / "shared"
    root.mkdir()
    return root


@pytest.fixture
def make_client(root_dir):
    """Build a started TestClient; keyword arguments override Settings fields.

    Rate limiting is off unless a test asks for it, since every request comes
    from the same test host.
    """
    with ExitStack() as stack:
        def _make(**overrides):
            options = {"root_dir": str(root_dir), "rate_limit_interval": 0}
            options.update(overrides)
            return stack.enter_context(TestClient(create_app(Settings(**options))))

        yield _make


@pytest.fixture
def client(make_client):
    return make_client()
