"""FastAPI dependencies."""
from fastapi import Request

from core.scraper_engine import ProductPipeline


async def get_pipeline(request: Request) -> ProductPipeline:
    """
    Get the product pipeline from app state.

    The pipeline (with its session, fetcher and response cache) is built
    during application startup and stored in app.state, so every request
    shares one synthetic session and one cache.

    Args:
        request: FastAPI request object

    Returns:
        ProductPipeline: Shared extraction pipeline
    """
    return request.app.state.pipeline
