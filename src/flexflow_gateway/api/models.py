"""
API Models

Pydantic response models for the gateway's own endpoints.
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error body returned to rejected or failed requests."""
    error: str = Field(..., description="Error message")


class HealthResponse(BaseModel):
    """Health check response format."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: Optional[str] = Field(default=None, description="Service version")
    rate_limiting: bool = Field(..., description="Whether rate limiting is active")


class PolicyInfo(BaseModel):
    """One rate limit tier."""
    name: str = Field(..., description="Tier name")
    max_requests: int = Field(..., description="Admitted requests per window per client")
    window_seconds: float = Field(..., description="Window size in seconds")
    message: str = Field(..., description="Message returned when the tier rejects")
    header_style: str = Field(..., description="Quota header style")


class PolicyListResponse(BaseModel):
    """Configured tiers and the route classes they apply to."""
    enabled: bool = Field(..., description="Whether rate limiting is active")
    algorithm: Optional[str] = Field(default=None, description="Window algorithm in use")
    policies: List[PolicyInfo] = Field(default_factory=list, description="Configured tiers")
    routes: Dict[str, List[str]] = Field(default_factory=dict, description="Route class -> tier names")


__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "PolicyInfo",
    "PolicyListResponse",
]
