"""Product attribute extraction endpoint."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from typing import Optional, Union

from ..dependencies import get_pipeline
from ..models import ErrorResponse
from core.scraper_engine import ProductPipeline
from utils.error_handling import MissingInput, PipelineStageError


router = APIRouter()

CACHE_HEADERS = {
    "Cache-Control": "public, max-age=3600, s-maxage=3600",
    "CDN-Cache-Control": "public, max-age=3600",
}


def staged_error_response(exc: Union[MissingInput, PipelineStageError]) -> JSONResponse:
    """Render a staged pipeline failure with its mapped HTTP status."""
    payload = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=exc.http_status, content=payload.model_dump())


@router.get(
    "/attributes",
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def get_attributes(
    url: Optional[str] = Query(default=None, description="Marketplace product page URL"),
    pipeline: ProductPipeline = Depends(get_pipeline),
):
    """
    Extract the normalized product record for a marketplace page.

    Fetches the page, reviews and recommendations, and returns the
    assembled record. Responses are memoized per literal URL.

    Args:
        url: Product page URL (required)
        pipeline: Extraction pipeline (injected)

    Returns:
        dict: Product record (``recommendations`` omitted when the URL has
        no item code)

    Example error response:
        ```json
        {
            "error": "reviews: upstream responded with HTTP 503",
            "stage": "reviews",
            "status": 503,
            "body": "..."
        }
        ```
    """
    try:
        record = await pipeline.extract(url)
    except (MissingInput, PipelineStageError) as exc:
        return staged_error_response(exc)

    return JSONResponse(content=record.to_dict(), headers=CACHE_HEADERS)
