"""Pydantic models for API response schemas."""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class ExportKind(str, Enum):
    """CSV export flavour."""
    CATALOG = "catalog"
    REVIEWS = "reviews"


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Overall health status")
    cache_entries: int = Field(..., description="Records currently held in the response cache")

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "ok",
                "cache_entries": 3
            }
        }
    }


class ErrorResponse(BaseModel):
    """
    Staged failure payload.

    Names the failing stage and, for upstream HTTP failures, carries the
    upstream status and raw body for debugging.
    """
    error: str = Field(..., description="Error message prefixed with the failing stage")
    stage: Optional[str] = Field(default=None, description="input, page fetch, reviews, recommendations or assembly")
    status: Optional[int] = Field(default=None, description="Upstream HTTP status")
    body: Optional[str] = Field(default=None, description="Raw upstream response body")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "reviews: upstream responded with HTTP 503",
                "stage": "reviews",
                "status": 503,
                "body": "<html>Service Unavailable</html>"
            }
        }
    }
