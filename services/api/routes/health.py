"""Health check endpoint."""
from fastapi import APIRouter, Depends

from ..dependencies import get_pipeline
from ..models import HealthResponse
from core.scraper_engine import ProductPipeline


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(pipeline: ProductPipeline = Depends(get_pipeline)):
    """
    Health check.

    Verifies that the API service is running and reports how many records
    the response cache currently holds (stale entries included until their
    next lookup).

    Example response:
        ```json
        {
            "status": "ok",
            "cache_entries": 3
        }
        ```
    """
    return HealthResponse(status="ok", cache_entries=len(pipeline.cache))
