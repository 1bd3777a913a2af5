import pytest
from fastapi.testclient import TestClient

from src.livechat.api.main import app


@pytest.fixture
def client(services):
    """TestClient over the app, skipping the MongoDB lifespan."""
    app.state.service_container = services
    app.state.startup_complete = True
    yield TestClient(app)
    app.state.startup_complete = False
    del app.state.service_container
