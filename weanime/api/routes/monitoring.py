"""Client error report intake, guarded by the ``monitoring`` rate limit profile."""

from __future__ import annotations

import json
import logging
import uuid

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from weanime.core.errors import ValidationAppError
from weanime.core.rate_limit import with_rate_limit
from weanime.schemas.monitoring import ErrorReport, ErrorReportAccepted

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Monitoring"])

_LOG_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
}


async def report_error(request: Request) -> JSONResponse:
    """Accept an error report from the web client and log it.

    Raises:
        ValidationAppError: If the body is not JSON or has no ``message``.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationAppError(
            code="invalid_error_report",
            message="Request body must be a JSON object",
        ) from exc

    try:
        report = ErrorReport.model_validate(payload)
    except ValidationError as exc:
        raise ValidationAppError(
            code="invalid_error_report",
            message="Error message is required",
            details={"context": {"errors": exc.errors(include_url=False, include_input=False)}},
        ) from exc

    report_id = report.id or f"error_{uuid.uuid4().hex[:12]}"

    logger.log(
        _LOG_LEVELS[report.level],
        "monitoring.error_report",
        extra={
            "report_id": report_id,
            "report_message": report.message,
            "report_level": report.level,
            "component": report.context.get("component"),
            "page_url": report.context.get("url"),
            "tags": report.tags,
            "has_stack": report.stack is not None,
        },
    )

    return JSONResponse(ErrorReportAccepted(id=report_id).model_dump())


router.add_api_route(
    "/monitoring/errors",
    with_rate_limit(report_error, "monitoring"),
    methods=["POST"],
    response_model=ErrorReportAccepted,
)
