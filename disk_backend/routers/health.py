from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from disk_backend.config import VERSION
from disk_backend.container import Services
from disk_backend.routers.deps import get_services

router = APIRouter(tags=["health"])


@router.get("/health")
def health(services: Services = Depends(get_services)) -> dict:
    return {
        "status": "OK" if services.cache.ping() else "DEGRADED",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "disk-backend",
        "version": VERSION,
    }
