"""Development and housekeeping endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter

from goongpt_api.api.v1.dependencies import ServicesDep
from goongpt_api.core.errors import PermissionDeniedError
from goongpt_api.core.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dev", tags=["system"])


@router.post("/reset")
def reset_storage(services: ServicesDep) -> dict[str, object]:
    """Wipe users, sessions and rate-limit state.

    Only available outside production.

    Raises:
        PermissionDeniedError: When running in production
    """
    if settings.is_production:
        raise PermissionDeniedError("Reset is only available in development")
    services.reset()
    logger.warning("Development storage reset")
    return {"success": True, "message": "Storage reset"}
