"""
Common Schemas Module
=====================

Shared Pydantic models: the camelCase base and the error envelope.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model exposing camelCase field names on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ErrorBody(BaseModel):
    """Inner error object."""

    code: str = Field(..., description="Stable error code")
    message: str = Field(..., description="Human readable message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details",
    )


class ErrorResponse(BaseModel):
    """Standard error envelope returned by every failing request."""

    error: ErrorBody

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "FORBIDDEN",
                    "message": "Insufficient permissions for this action",
                    "details": {"module": "crm", "action": "update"},
                }
            }
        }
    )
