"""Option lists for the project and zone pickers."""

from tgcp.errors import TgcpError
from tgcp.gcp.auth import STATIC_ZONES
from tgcp.gcp.client import GcpClientError
from tgcp.gcp.context import ALL_ZONES
from tgcp.logging import get_logger
from tgcp.resources.backend import ResourceBackend
from tgcp.resources.fetcher import fetch_all
from tgcp.resources.values import text_value

logger = get_logger(__name__)

PROJECTS_RESOURCE = "resourcemanager-projects"
ZONES_RESOURCE = "compute-zones"


async def load_projects(backend: ResourceBackend) -> list[str]:
    """ACTIVE project ids, sorted; the current project if none can be listed."""
    current = backend.context.project
    try:
        items = await fetch_all(backend, PROJECTS_RESOURCE)
    except (GcpClientError, TgcpError) as e:
        logger.warning(f"Failed to list projects: {e}, using current project only")
        return [current]

    projects = sorted(
        project_id
        for item in items
        if text_value(item, "lifecycleState") == "ACTIVE"
        and (project_id := text_value(item, "projectId"))
    )
    if not projects:
        logger.warning("No projects returned, using current project only")
        return [current]
    logger.info(f"Loaded {len(projects)} projects")
    return projects


async def load_zones(backend: ResourceBackend) -> list[str]:
    """Zone names with "all" first; a static list when the API fails."""
    try:
        items = await fetch_all(backend, ZONES_RESOURCE)
        zones = sorted(name for item in items if (name := text_value(item, "name")))
    except (GcpClientError, TgcpError) as e:
        logger.warning(f"Failed to list zones: {e}, using static list")
        zones = []

    if not zones:
        zones = list(STATIC_ZONES)
    else:
        logger.info(f"Loaded {len(zones)} zones")
    return [ALL_ZONES, *zones]
