"""Serving of the pre-built user and admin single-page apps.

Both apps are Vite builds: an ``index.html`` plus an ``assets/`` folder.
The dispatcher resolves a request path against an ordered table of
(matcher, handler) entries, longest prefix first:

    <admin>/assets/*  -> admin_dist/assets      (no SPA fallback)
    /assets/*         -> user_dist/assets       (no SPA fallback)
    <admin>, <admin>/* -> admin_dist             (SPA fallback)
    /*  (not /api)    -> user_dist              (SPA fallback)

Anything left over goes to the catch-all, which answers API paths with a
JSON 404 and everything else with the matching app's ``index.html``.
"""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

from starlette.responses import FileResponse, JSONResponse, PlainTextResponse, Response

from realty_server.utils import is_api_path, under_prefix

logger = logging.getLogger(__name__)

# Generic MIME inference is unreliable for ES modules on some hosts, and a
# module script served with the wrong type is refused by the browser.
MIME_OVERRIDES = {
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".css": "text/css",
    ".html": "text/html",
    ".svg": "image/svg+xml",
    ".json": "application/json",
}

DEFAULT_MIME = "application/octet-stream"


def mime_type_for(path) -> str:
    suffix = PurePosixPath(str(path)).suffix.lower()
    if suffix in MIME_OVERRIDES:
        return MIME_OVERRIDES[suffix]
    guessed, _ = mimetypes.guess_type(str(path), strict=False)
    return guessed or DEFAULT_MIME


def not_found() -> Response:
    return PlainTextResponse("Not found", status_code=404)


def contained(root: Path, path: Path) -> bool:
    return path == root or path.is_relative_to(root)


def safe_join(root: Path, relative: str) -> Optional[Path]:
    """Join ``relative`` onto ``root``; None if the result leaves ``root``."""
    try:
        candidate = (root / relative.lstrip("/")).resolve()
    except (OSError, ValueError):
        return None
    if not contained(root, candidate):
        return None
    return candidate


def serve_file(path: Path) -> Response:
    return FileResponse(str(path), headers={"content-type": mime_type_for(path)})


@dataclass(frozen=True)
class FrontendConfig:
    user_root: Path
    admin_root: Path
    admin_prefix: str = "/admin"


Matcher = Callable[[str], Optional[str]]
Handler = Callable[[str], Response]


@dataclass(frozen=True)
class FrontendRoute:
    prefix: str
    matcher: Matcher
    handler: Handler


def prefix_matcher(prefix: str, *, exact: bool = True, skip_api: bool = False) -> Matcher:
    """Return the remainder of a path below ``prefix``, or None."""

    def match(path: str) -> Optional[str]:
        if skip_api and is_api_path(path):
            return None
        if prefix and path == prefix:
            return "/" if exact else None
        if path.startswith(prefix + "/"):
            return path[len(prefix):]
        return None

    return match


class FrontendDispatcher:
    def __init__(self, config: FrontendConfig):
        self.config = config
        self.user_root = Path(config.user_root).resolve()
        self.admin_root = Path(config.admin_root).resolve()
        self.admin_prefix = config.admin_prefix.rstrip("/")
        self.routes = self._build_routes()
        self._verify_paths()

    def _build_routes(self) -> List[FrontendRoute]:
        admin, user = self.admin_prefix, ""
        routes = [
            FrontendRoute(
                f"{admin}/assets",
                prefix_matcher(f"{admin}/assets", exact=False),
                self._asset_handler(self.admin_root),
            ),
            FrontendRoute(
                "/assets",
                prefix_matcher("/assets", exact=False),
                self._asset_handler(self.user_root),
            ),
            FrontendRoute(admin, prefix_matcher(admin), self._app_handler(self.admin_root)),
            FrontendRoute(user, prefix_matcher(user, skip_api=True), self._app_handler(self.user_root)),
        ]
        return sorted(routes, key=lambda r: len(r.prefix), reverse=True)

    def _verify_paths(self) -> None:
        for label, root in (("User", self.user_root), ("Admin", self.admin_root)):
            if not root.exists():
                logger.warning(f"{label} frontend path not found: {root}")
        logger.info(
            f"Frontend handler configured: user={self.user_root} "
            f"admin={self.admin_root} (available at {self.admin_prefix})"
        )

    # ── Handlers ─────────────────────────────────────────────────────────────

    def _asset_handler(self, root: Path) -> Handler:
        assets_root = root / "assets"

        def handle(remainder: str) -> Response:
            target = safe_join(assets_root, remainder)
            if target is not None and target.is_file():
                return serve_file(target)
            return not_found()

        return handle

    def _app_handler(self, root: Path) -> Handler:
        def handle(remainder: str) -> Response:
            relative = remainder.lstrip("/")
            # Directory-like paths prefer their own index.html
            if remainder.endswith("/") or not PurePosixPath(relative).suffix:
                folder = safe_join(root, relative)
                if folder is not None and (folder / "index.html").is_file():
                    return serve_file(folder / "index.html")

            target = safe_join(root, relative)
            if target is not None and target.is_file():
                return serve_file(target)
            return self._spa_fallback(root, target)

        return handle

    def _spa_fallback(self, root: Path, target: Optional[Path]) -> Response:
        candidates = []
        if target is not None and contained(root, target.parent):
            candidates.append(target.parent / "index.html")
        candidates.append(root / "index.html")
        for index in candidates:
            if index.is_file():
                return serve_file(index)
        return not_found()

    def catch_all(self, path: str) -> Response:
        if is_api_path(path):
            return JSONResponse({"error": "API endpoint not found"}, status_code=404)
        if under_prefix(path, self.admin_prefix):
            index = self.admin_root / "index.html"
            if index.is_file():
                return serve_file(index)
        index = self.user_root / "index.html"
        if index.is_file():
            return serve_file(index)
        return not_found()

    # ── Entry point ──────────────────────────────────────────────────────────

    def dispatch(self, method: str, path: str) -> Response:
        if method not in ("GET", "HEAD"):
            if is_api_path(path):
                return JSONResponse({"error": "API endpoint not found"}, status_code=404)
            return not_found()
        for route in self.routes:
            remainder = route.matcher(path)
            if remainder is not None:
                return route.handler(remainder)
        return self.catch_all(path)
