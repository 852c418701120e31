"""Pydantic schemas for client error reports."""

from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field


class ErrorReport(BaseModel):
    """Error report sent by the web client."""

    id: str | None = Field(
        default=None,
        description="Client-generated report id; one is assigned when omitted.",
    )
    message: str = Field(..., min_length=1, description="Error message.")
    stack: str | None = Field(default=None, description="Stack trace, if available.")
    level: Literal["error", "warning", "info"] = Field(
        default="error",
        description="Severity reported by the client.",
    )
    context: Dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form context (component, url, user id...).",
    )
    performance: Dict[str, Any] | None = Field(
        default=None,
        description="Optional performance metrics captured alongside the error.",
    )
    tags: List[str] = Field(default_factory=list)


class ErrorReportAccepted(BaseModel):
    success: bool = True
    message: str = "Error logged successfully"
    id: str
