"""
Common response schemas for consistent API structure.
"""
from pydantic import BaseModel, ConfigDict, Field


class ErrorResponseSchema(BaseModel):
    """Standard error response format."""
    model_config = ConfigDict(from_attributes=True)

    error: str = Field(..., description="Error message", json_schema_extra={"example": "Validation failed"})
    details: list[str] | str | dict | list[dict] | None = Field(None, description="Additional error details", json_schema_extra={"example": ["mpns: field required"]})


class MessageResponseSchema(BaseModel):
    """Simple message response format."""
    model_config = ConfigDict(from_attributes=True)

    message: str = Field(..., description="Response message", json_schema_extra={"example": "Cache entry deleted"})
