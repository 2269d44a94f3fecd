"""
Common schemas shared by several endpoints.
"""

import math
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: Optional[str] = None
    timestamp: Optional[str] = None


class MessageResponse(BaseModel):
    """Schema for simple success responses."""

    message: str = Field(..., description="Success message")


class PaginationInfo(BaseModel):
    """Schema for pagination information."""

    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    size: int = Field(..., description="Number of items per page")
    pages: int = Field(..., description="Total number of pages")

    @classmethod
    def build(cls, total: int, page: int, size: int) -> "PaginationInfo":
        return cls(total=total, page=page, size=size, pages=math.ceil(total / size) if total else 1)
