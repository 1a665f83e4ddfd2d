"""Health probe response schema."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = Field(description="Probe status", json_schema_extra={"example": "alive"})
    ready: bool = Field(description="Whether the service can take traffic")
    database: str | None = Field(default=None, description="Database reachability, readiness probe only")
