"""
Noteworthy Backend - Shared Response Schemas
==============================================

What:  Error envelope and health check models used by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "cycle_error",
            "message": "A folder cannot be moved into one of its own subfolders",
            "details": {"folder_id": "...", "parent_id": "..."},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error kind")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Liveness/readiness status; identical for anonymous and authenticated callers."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
