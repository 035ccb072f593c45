"""Declarative table of API route groups.

Route modules are plain Python modules exposing ``router: APIRouter``.
The table mounts them longest-prefix-first so a group like
``/api/products`` is consulted before a catch-all group on ``/api``.
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from fastapi import APIRouter, FastAPI
from starlette.datastructures import URL
from starlette.responses import RedirectResponse
from starlette.routing import BaseRoute, Match
from starlette.types import Scope

from realty_server.utils import under_prefix

logger = logging.getLogger(__name__)

# (mount prefix, module name inside the route-modules package)
DEFAULT_ROUTE_MODULES: Sequence[Tuple[str, str]] = (
    ("/api/products", "products"),
    ("/api/users", "users"),
    ("/api/forms", "forms"),
    ("/api/news", "news"),
    ("/api/appointments", "appointments"),
    ("/api/admin", "admin"),
    ("/api/properties", "admin_properties"),
    ("/api", "property_listings"),
    ("/api", "lucky_draw"),
)


@dataclass(frozen=True)
class RouteGroup:
    prefix: str
    router: APIRouter
    name: str


class RouteTable:
    def __init__(self, groups: Iterable[RouteGroup] = ()):
        self._groups: List[RouteGroup] = list(groups)

    def __len__(self) -> int:
        return len(self._groups)

    def add(self, prefix: str, router: APIRouter, name: Optional[str] = None) -> "RouteTable":
        prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""
        self._groups.append(RouteGroup(prefix=prefix, router=router, name=name or prefix or "/"))
        return self

    def ordered(self) -> List[RouteGroup]:
        """Groups longest-prefix-first; equal prefixes keep registration order."""
        return sorted(self._groups, key=lambda g: len(g.prefix), reverse=True)

    def match(self, path: str) -> Optional[RouteGroup]:
        """The group whose prefix owns ``path``, if any."""
        for group in self.ordered():
            if under_prefix(path, group.prefix):
                return group
        return None

    def mount(self, app: FastAPI) -> None:
        for group in self.ordered():
            app.include_router(group.router, prefix=group.prefix)
            logger.debug(f"Mounted route group {group.name} at {group.prefix or '/'}")


def load_route_table(
    package: str,
    modules: Sequence[Tuple[str, str]] = DEFAULT_ROUTE_MODULES,
) -> RouteTable:
    """Import each route module from ``package`` and collect its router.

    Modules that are not installed are skipped with a warning so the
    server can still come up with a partial API.
    """
    table = RouteTable()
    for prefix, module_name in modules:
        qualified = f"{package}.{module_name}"
        try:
            module = importlib.import_module(qualified)
        except ModuleNotFoundError as e:
            if e.name not in (qualified, package):
                raise
            logger.warning(f"Route module not found, skipping {prefix}: {qualified}")
            continue
        router = getattr(module, "router", None)
        if not isinstance(router, APIRouter):
            raise TypeError(f"{qualified} does not define an APIRouter named 'router'")
        table.add(prefix, router, name=module_name)
    return table


def slash_redirect(routes: Sequence[BaseRoute], scope: Scope, exclude: Any = None) -> Optional[RedirectResponse]:
    """307 to the same path with its trailing slash toggled, when a route
    serves that form. ``exclude`` is an endpoint to ignore, typically a
    catch-all that would match either way."""
    path = scope["path"]
    if path == "/":
        return None
    redirect_scope = dict(scope)
    redirect_scope["path"] = path[:-1] if path.endswith("/") else path + "/"
    for route in routes:
        if exclude is not None and getattr(route, "endpoint", None) is exclude:
            continue
        match, _ = route.matches(redirect_scope)
        if match != Match.NONE:
            return RedirectResponse(url=str(URL(scope=redirect_scope)), status_code=307)
    return None
