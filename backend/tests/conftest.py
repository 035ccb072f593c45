"""Shared fixtures: throwaway frontend builds and settings pointing at them."""

import pytest

from realty_server.config import Settings


@pytest.fixture
def dist(tmp_path):
    """A user and an admin build, each with an index and a few assets."""
    user = tmp_path / "user_dist"
    admin = tmp_path / "admin_dist"
    (user / "assets").mkdir(parents=True)
    (admin / "assets").mkdir(parents=True)

    (user / "index.html").write_text("<html>user app</html>")
    (user / "favicon.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (user / "assets" / "index-abc123.js").write_text("console.log('user');")
    (user / "assets" / "vendor.mjs").write_text("export default 1;")
    (user / "assets" / "index-abc123.css").write_text("body { margin: 0; }")
    (user / "assets" / "logo.svg").write_text("<svg xmlns='http://www.w3.org/2000/svg'/>")
    (user / "assets" / "manifest.json").write_text('{"name": "realty"}')
    (user / "assets" / "page.html").write_text("<p>partial</p>")
    (user / "assets" / "hero.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (user / "assets" / "blob.qqzz").write_bytes(b"\x00\x01")

    (admin / "index.html").write_text("<html>admin app</html>")
    (admin / "assets" / "admin-def456.js").write_text("console.log('admin');")
    return tmp_path


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides) -> Settings:
        values = {
            "USER_DIST_DIR": str(tmp_path / "user_dist"),
            "ADMIN_DIST_DIR": str(tmp_path / "admin_dist"),
            "TEMP_DIR": str(tmp_path / "temp"),
            "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
            "ENVIRONMENT": "production",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make
