"""Smoke tests: the app starts and core endpoints respond."""

from datetime import datetime

import pytest
from httpx import AsyncClient, ASGITransport

from realty_server.main import create_app
from realty_server.routing import RouteTable


@pytest.fixture
def app(dist, make_settings):
    return create_app(make_settings(), routes=RouteTable())


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_status(client):
    r = await client.get("/api/status")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "OK"
    assert data["time"].endswith("Z")
    parsed = datetime.fromisoformat(data["time"].replace("Z", "+00:00"))
    assert parsed.tzinfo is not None


@pytest.mark.asyncio
async def test_status_carries_security_headers(client):
    r = await client.get("/api/status")
    assert r.headers["x-content-type-options"] == "nosniff"
    assert r.headers["x-frame-options"] == "SAMEORIGIN"
    assert "default-src 'self'" in r.headers["content-security-policy"]


@pytest.mark.asyncio
async def test_openapi_lives_under_api(client):
    r = await client.get("/api/openapi.json")
    assert r.status_code == 200
    assert "/api/status" in r.json()["paths"]


@pytest.mark.asyncio
async def test_root_serves_user_app(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.text == "<html>user app</html>"


def test_temp_dir_created(app, tmp_path):
    assert (tmp_path / "temp").is_dir()
    assert app.state.temp_dir == tmp_path / "temp"


def test_temp_dir_failure_is_not_fatal(dist, make_settings, tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    app = create_app(make_settings(TEMP_DIR=str(blocker / "temp")), routes=RouteTable())
    assert app.state.temp_dir is None
