from fastapi import APIRouter

from flowspace.core.config import settings
from flowspace.core.version import __version__

router = APIRouter()


@router.get("/version")
def read_version() -> dict[str, str]:
    """Public build information for clients and health checks."""
    return {"name": settings.PROJECT_NAME, "version": __version__}
