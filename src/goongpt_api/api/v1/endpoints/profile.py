# src/goongpt_api/api/v1/endpoints/profile.py
"""Profile endpoints for authenticated users."""

from __future__ import annotations

from fastapi import APIRouter

from goongpt_api.api.v1.dependencies import CurrentSessionDep, ServicesDep
from goongpt_api.schemas.user import ProfileResponse, ProfileUpdateRequest

router = APIRouter(tags=["profile"])


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdateRequest,
    current: CurrentSessionDep,
    services: ServicesDep,
) -> ProfileResponse:
    """Update username, email or profile picture of the current user.

    Only fields present in the request body are changed.

    Args:
        payload: Fields to change
        current: Authenticated session of the caller
        services: Service container

    Returns:
        The updated user
    """
    user = services.auth.update_profile(current.user.id, payload.model_dump(exclude_unset=True))
    return ProfileResponse(user=user)
