"""CSV export endpoints."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from typing import Optional

from ..dependencies import get_pipeline
from ..models import ErrorResponse, ExportKind
from .attributes import staged_error_response
from core.scraper_engine import ProductPipeline
from utils.error_handling import MissingInput, PipelineStageError
from utils.export_writers import catalog_csv, reviews_csv
from utils.helpers import extract_item_code


router = APIRouter()


@router.get(
    "/attributes/export",
    responses={200: {"content": {"text/csv": {}}}, 400: {"model": ErrorResponse}},
)
async def export_attributes(
    url: Optional[str] = Query(default=None, description="Marketplace product page URL"),
    kind: ExportKind = Query(default=ExportKind.CATALOG, description="catalog or reviews"),
    pipeline: ProductPipeline = Depends(get_pipeline),
):
    """
    Download the product record as CSV.

    ``catalog`` produces store import rows (parent product plus one row per
    variant combination); ``reviews`` produces one row per buyer review.

    Args:
        url: Product page URL (required)
        kind: Export flavour
        pipeline: Extraction pipeline (injected)

    Returns:
        Response: ``text/csv`` attachment
    """
    try:
        record = await pipeline.extract(url)
    except (MissingInput, PipelineStageError) as exc:
        return staged_error_response(exc)

    if kind is ExportKind.REVIEWS:
        content = reviews_csv(record.reviews)
    else:
        content = catalog_csv(record)

    filename = f"{extract_item_code(url) or 'product'}-{kind.value}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
