"""Cache management and health endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ragchat.api.deps import get_data_layer
from ragchat.core.logging import get_logger
from ragchat.services.unified_cache import ChatCacheService

logger = get_logger(__name__)
router = APIRouter()


@router.get("/cache/stats")
async def get_cache_stats(
    data_layer: ChatCacheService = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Cache availability, size and hit/miss counters."""
    snapshot = await data_layer.get_cache_stats()
    stats = data_layer.stats

    return {
        **snapshot.model_dump(),
        "state": data_layer.backend.state.value,
        "overall_hit_rate": round(stats.overall_hit_rate, 4),
        "history": stats.history.to_dict(),
        "knowledge": stats.knowledge.to_dict(),
    }


@router.post("/cache/clear")
async def clear_cache(
    data_layer: ChatCacheService = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Flush every cached entry."""
    cleared = await data_layer.clear_all()
    if cleared:
        logger.info("Cache cleared via admin endpoint")
        return {"status": "success", "message": "All cache cleared"}
    return {"status": "skipped", "message": "Cache unavailable"}


@router.get("/health")
async def health(
    data_layer: ChatCacheService = Depends(get_data_layer),
) -> Dict[str, Any]:
    """Liveness plus cache connectivity. The service is healthy without cache."""
    return {
        "status": "healthy" if data_layer.enabled else "degraded",
        "cache": data_layer.backend.state.value,
    }
