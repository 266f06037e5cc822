# src/goongpt_api/api/v1/endpoints/tokens.py
"""Token earning and balance endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from goongpt_api.api.v1.dependencies import CurrentSessionDep, ServicesDep, rate_limit
from goongpt_api.schemas.tokens import EarnTokensRequest, EarnTokensResponse, TokenDataResponse

router = APIRouter(prefix="/tokens", tags=["tokens"])


@router.post(
    "/earn",
    response_model=EarnTokensResponse,
    dependencies=[Depends(rate_limit("earn_tokens"))],
)
def earn_tokens(
    payload: EarnTokensRequest,
    current: CurrentSessionDep,
    services: ServicesDep,
) -> EarnTokensResponse:
    """Award tokens to the current user, capped by the daily limit.

    Returns 429 once the daily limit has been used up.
    """
    return services.tokens.earn(current.user.id, payload.amount, payload.action)


@router.get(
    "",
    response_model=TokenDataResponse,
    dependencies=[Depends(rate_limit("token_data"))],
)
def get_token_data(current: CurrentSessionDep, services: ServicesDep) -> TokenDataResponse:
    """Balances, today's progress and the latest transactions."""
    return services.tokens.data(current.user.id)
