"""Pydantic response schemas for the church portal API.

Most routes relay the backend's JSON untouched, so only the bodies this
service produces itself are modelled here.  Every error the service
produces has the same ``{"error": "..."}`` shape the admin panel reads.
"""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    cache_backend: str


class TokenValidationResponse(BaseModel):
    valid: bool


class PinVerificationResponse(BaseModel):
    success: bool
    message: str
