"""Health check endpoint for Docker healthchecks."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from cinesync import __version__
from cinesync.domain.value_objects import utc_now

router = APIRouter(tags=["Health"])


class LivenessStatus(BaseModel):
    """Simple liveness check response."""

    status: str = Field(description="alive")
    timestamp: str = Field(description="ISO timestamp")
    version: str = Field(default=__version__, description="Application version")


@router.get("/health", response_model=LivenessStatus)
async def liveness_check() -> LivenessStatus:
    """Return 200 while the process is running. No dependency checks."""
    return LivenessStatus(status="alive", timestamp=utc_now().isoformat())
