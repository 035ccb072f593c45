"""Tests for the startup database check and the session dependency."""

import asyncio
import logging

import pytest
from fastapi import APIRouter, Depends
from httpx import AsyncClient, ASGITransport
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from realty_server.database import build_engine, connect_db, get_db
from realty_server.main import create_app, lifespan
from realty_server.routing import RouteTable


def test_pool_options_only_for_server_databases(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "realty_server.database.create_async_engine",
        lambda url, **kw: calls.append((url, kw)),
    )
    build_engine("sqlite+aiosqlite:///:memory:")
    build_engine("postgresql+asyncpg://realty@db/realty")
    assert calls[0][1] == {"echo": False}
    assert calls[1][1]["pool_size"] == 20
    assert calls[1][1]["pool_pre_ping"] is True


@pytest.mark.asyncio
async def test_connect_db_success(caplog):
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    with caplog.at_level(logging.INFO, logger="realty_server.database"):
        assert await connect_db(engine) is True
    await engine.dispose()
    assert "Database connected successfully" in caplog.text


@pytest.mark.asyncio
async def test_connect_db_failure_is_logged_not_raised(tmp_path, caplog):
    missing = tmp_path / "no" / "such" / "dir" / "realty.db"
    engine = build_engine(f"sqlite+aiosqlite:///{missing}")
    with caplog.at_level(logging.ERROR, logger="realty_server.database"):
        assert await connect_db(engine) is False
    await engine.dispose()
    assert "Database connection error" in caplog.text


@pytest.mark.asyncio
async def test_lifespan_wires_database(dist, make_settings, tmp_path):
    db_router = APIRouter()

    @db_router.get("/ping")
    async def ping(db: AsyncSession = Depends(get_db)):
        result = await db.execute(text("SELECT 1"))
        return {"db": result.scalar()}

    fatal = []
    app = create_app(
        make_settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'realty.db'}"),
        routes=RouteTable().add("/api/db", db_router),
        on_fatal=fatal.append,
    )
    async with lifespan(app):
        assert app.state.supervisor is not None
        # Let the background connection check finish
        for _ in range(50):
            if not app.state.supervisor.tasks:
                break
            await asyncio.sleep(0.01)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            r = await c.get("/api/db/ping")
        assert r.status_code == 200
        assert r.json() == {"db": 1}
    assert fatal == []


@pytest.mark.asyncio
async def test_unreachable_database_does_not_block_requests(dist, make_settings, tmp_path):
    missing = tmp_path / "no" / "such" / "dir" / "realty.db"
    fatal = []
    app = create_app(
        make_settings(DATABASE_URL=f"sqlite+aiosqlite:///{missing}"),
        routes=RouteTable(),
        on_fatal=fatal.append,
    )
    async with lifespan(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            r = await c.get("/api/status")
        assert r.status_code == 200
        for _ in range(50):
            if not app.state.supervisor.tasks:
                break
            await asyncio.sleep(0.01)
    assert fatal == []
