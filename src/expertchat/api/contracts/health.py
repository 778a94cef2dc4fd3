"""Health check contract."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness plus enough metadata to tell deployments apart."""

    status: str = Field(examples=["healthy"])
    service: str
    version: str
    environment: str
