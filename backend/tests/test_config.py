"""Tests for settings loading and validation."""

import os

import pytest
from pydantic import ValidationError

from realty_server.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("ENVIRONMENT", "NODE_ENV", "PORT", "CORS_ORIGINS", "ADMIN_PATH_PREFIX"):
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    s = Settings(_env_file=None)
    assert s.PORT == 4000
    assert s.HOST == "0.0.0.0"
    assert s.RATE_LIMIT_WINDOW_SECONDS == 15 * 60
    assert s.RATE_LIMIT_MAX_REQUESTS == 500
    assert s.MAX_BODY_SIZE == 50 * 1024 * 1024
    assert s.ADMIN_PATH_PREFIX == "/admin"
    assert not s.is_development
    assert s.USER_DIST_DIR.endswith("user_dist")
    assert s.ADMIN_DIST_DIR.endswith("admin_dist")


def test_default_origins_are_valid():
    s = Settings(_env_file=None)
    assert "http://localhost:5173" in s.CORS_ORIGINS
    assert all(" " not in origin for origin in s.CORS_ORIGINS)


def test_origin_with_space_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, CORS_ORIGINS=["https://Hybrid Realty.vercel.app"])


def test_origins_trailing_slash_trimmed():
    s = Settings(_env_file=None, CORS_ORIGINS=["https://realty.example/"])
    assert s.CORS_ORIGINS == ["https://realty.example"]


def test_node_env_selects_development(monkeypatch):
    monkeypatch.setenv("NODE_ENV", "development")
    assert Settings(_env_file=None).is_development


def test_port_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    assert Settings(_env_file=None).PORT == 8080


def test_origins_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://admin.realty.example"]')
    assert Settings(_env_file=None).CORS_ORIGINS == ["https://admin.realty.example"]


def test_relative_dirs_are_absolute():
    s = Settings(_env_file=None, USER_DIST_DIR="build/user", TEMP_DIR="tmp")
    assert os.path.isabs(s.USER_DIST_DIR)
    assert s.USER_DIST_DIR.endswith(os.path.join("build", "user"))
    assert os.path.isabs(s.TEMP_DIR)


def test_admin_prefix_normalized():
    assert Settings(_env_file=None, ADMIN_PATH_PREFIX="backoffice/").ADMIN_PATH_PREFIX == "/backoffice"


def test_admin_prefix_cannot_be_root():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, ADMIN_PATH_PREFIX="/")


def test_settings_are_frozen():
    s = Settings(_env_file=None)
    with pytest.raises(ValidationError):
        s.PORT = 5000
