"""Feature modules with auto-discovery."""

from importlib import import_module
from pathlib import Path

import structlog
from fastapi import APIRouter


log = structlog.get_logger()


def discover_modules() -> list[APIRouter]:
    """Collect the routers of all feature modules.

    A module takes part when its package defines ``router``. Modules
    without one (plans, provisioning, monitoring) are libraries used by
    the others.

    Returns:
        Routers in module name order
    """
    modules_dir = Path(__file__).parent
    routers: list[APIRouter] = []

    for path in sorted(modules_dir.iterdir()):
        if not path.is_dir() or path.name.startswith("_"):
            continue
        module = import_module(f"tenantforge.modules.{path.name}")
        router = getattr(module, "router", None)
        if isinstance(router, APIRouter):
            routers.append(router)
            log.debug("module_loaded", module=path.name)

    return routers
