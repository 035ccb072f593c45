"""Status endpoint."""

from fastapi import APIRouter

from realty_server.utils import utc_now_iso

router = APIRouter(prefix="/api", tags=["Health"])


@router.get("/status")
async def status():
    """Liveness probe with the server's current UTC time."""
    return {"status": "OK", "time": utc_now_iso()}
