"""Pydantic schemas for the rate limit admin endpoints."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class ClientUsageOut(BaseModel):
    key: str = Field(..., description="Anonymized client key (first 8 characters).")
    count: int
    reset_time: float = Field(..., description="UNIX time in seconds when the window resets.")


class ProfileStats(BaseModel):
    """Counter table snapshot for one profile."""

    profile: str
    window_seconds: float
    max_requests: int
    adaptive: bool
    total_entries: int = Field(..., description="Entries held, expired ones included.")
    active_clients: int = Field(..., description="Entries whose window has not expired.")
    top_clients: List[ClientUsageOut] = Field(default_factory=list)
    suspicious_clients: int = Field(0, description="Keys currently marked suspicious (adaptive profiles only).")
    trusted_clients: int = Field(0, description="Keys currently marked trusted (adaptive profiles only).")


class RateLimitOverview(BaseModel):
    profiles: Dict[str, ProfileStats]


class ClientKeyRequest(BaseModel):
    key: str = Field(..., min_length=1, description="Client key, usually an IP address.")


class ReputationResponse(BaseModel):
    profile: str
    key: str
    suspicious: bool
    trusted: bool
    suspicious_until: float | None = None


class ResetResponse(BaseModel):
    profile: str
    key: str | None = Field(default=None, description="Key that was reset; null when the table was cleared.")
