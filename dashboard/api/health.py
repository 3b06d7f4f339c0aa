from fastapi import APIRouter, Depends

from dashboard.core.container import Container, get_container

router = APIRouter()


@router.get("/health")
async def health(container: Container = Depends(get_container)):
    return {
        "status": "ok",
        "cache_backend": container.config.CACHE_BACKEND,
        "in_flight_fetches": container.orchestrator.in_flight(),
    }
