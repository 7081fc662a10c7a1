"""
API response envelopes and schemas for the FastAPI application.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Envelope(BaseModel):
    """Standard ``{data, message}`` response body."""
    data: Any = Field(None, description="Payload")
    message: str = Field(..., description="Human-readable outcome")


class TokenEnvelope(Envelope):
    """Response body for register and login."""
    token: str = Field(..., description="Bearer token")


class Pagination(BaseModel):
    """Offset pagination block for user listings."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_users: int = Field(..., description="Total number of users")
    total_pages: int = Field(..., description="Total number of pages")
    current_page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Users per page")


class PaginatedEnvelope(Envelope):
    """User listing with pagination details."""
    pagination: Pagination


class ErrorResponse(BaseModel):
    """Error response model."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status_code: int = Field(..., description="HTTP status code")
    error: str = Field(..., description="Error class name")
    message: str = Field(..., description="Error message")
    missing: Optional[List[str]] = Field(None, description="Missing required fields")
    detail: Optional[str] = Field(None, description="Additional error details")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
    collections: Optional[Dict[str, int]] = Field(None, description="Document counts per collection")


def dump(model: BaseModel, exclude_none: bool = False) -> Dict[str, Any]:
    """JSON-ready dict using wire (alias) names."""
    return model.model_dump(by_alias=True, mode="json", exclude_none=exclude_none)
