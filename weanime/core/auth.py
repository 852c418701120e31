"""Admin key authentication for the rate limit management endpoints.

Keys are validated against a comma-separated list from environment
variables (``APP_ADMIN_API_KEYS``) and compared in constant time.
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header, HTTPException, status

from weanime.adapters.rate_limit.keys import hash_key
from weanime.core.config import parse_csv, settings
from weanime.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)


def validate_admin_key(provided_key: str) -> None:
    """Validate that the provided key matches a configured admin key.

    Pure validation logic without FastAPI dependencies for easy testing.

    Args:
        provided_key: Admin key to validate.

    Raises:
        AuthenticationAppError: If the key is invalid, or if authentication
            is required but no keys are configured.
    """
    if not settings.app.admin_auth_required:
        return

    valid_keys = parse_csv(settings.app.admin_api_keys)

    if not valid_keys:
        logger.error(
            "auth.admin_keys_not_configured",
            extra={"auth_required": settings.app.admin_auth_required},
        )
        raise AuthenticationAppError(
            code="admin_keys_not_configured",
            message="Admin authentication is enabled but no admin keys are configured",
            details={"hint": "Set APP_ADMIN_API_KEYS or disable with APP_ADMIN_AUTH_REQUIRED=false"},
        )

    provided = provided_key.encode()
    if not any(hmac.compare_digest(provided, key.encode()) for key in valid_keys):
        logger.warning(
            "auth.invalid_admin_key",
            extra={"admin_key_hash": hash_key(provided_key)},
        )
        raise AuthenticationAppError(
            code="invalid_admin_key",
            message="Invalid or missing admin key",
        )


async def verify_admin_key(
    x_admin_key: Annotated[str | None, Header(alias="X-Admin-Key")] = None,
) -> None:
    """FastAPI dependency guarding the admin routes.

    Usage:
        @router.get("/admin/thing", dependencies=[Depends(verify_admin_key)])

    Raises:
        HTTPException: 403 Forbidden if authentication fails.
    """
    if not settings.app.admin_auth_required:
        logger.debug("auth.skipped", extra={"reason": "admin_auth_required_false"})
        return

    if not x_admin_key:
        logger.warning("auth.missing_admin_key")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Missing admin key. Provide X-Admin-Key header.",
        )

    try:
        validate_admin_key(x_admin_key)
    except AuthenticationAppError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.message,
        ) from exc

    logger.info("auth.success", extra={"admin_key_hash": hash_key(x_admin_key)})
