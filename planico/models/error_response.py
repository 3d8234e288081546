"""
Standardized error response models for consistent API error handling.

Copyright (C) 2025 Planico

Licensed under the Business Source License 1.1 (BUSL-1.1).
See LICENSE file in the repository root for details.
"""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response model for all API errors.

    Attributes:
        status_code: HTTP status code (e.g., 400, 404, 409, 500)
        code: Application-specific error code for programmatic handling
        message: User-friendly error message safe for display
        detail: Optional internal details for debugging (excluded in production)
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status_code": 400,
                "code": "INVALID_INTERVAL",
                "message": "End time must be after start time",
            }
        }
    )

    status_code: int = Field(..., description="HTTP status code")
    code: str = Field(..., description="Application-specific error code")
    message: str = Field(..., description="User-friendly error message")
    detail: str | None = Field(
        None,
        description="Internal error details for debugging (may be excluded in production)",
    )
