from fastapi import APIRouter, Depends
import logging

from dashboard.core.container import Container, get_container
from dashboard.core.errors import DashboardError
from dashboard.schemas.collection import CollectionCount, Overview

router = APIRouter(tags=["overview"])
logger = logging.getLogger(__name__)


@router.get("/overview", response_model=Overview)
async def get_overview(container: Container = Depends(get_container)):
    """Document counts per collection, served from the cached lists."""
    counts = []
    for service in container.services:
        try:
            documents = await service.list_all()
        except DashboardError as e:
            # one unavailable collection should not blank the whole dashboard
            logger.error(f"Overview skipped '{service.collection}': {e}")
            continue
        counts.append(CollectionCount(collection=service.collection, count=len(documents)))

    return Overview(collections=counts, total_documents=sum(c.count for c in counts))
