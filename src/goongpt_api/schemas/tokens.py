"""Token-earning Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class TokenTransaction(BaseModel):
    id: str
    user_id: str
    amount: int
    action: str
    type: str = "earn"
    created_at: datetime


class EarnTokensRequest(BaseModel):
    amount: int = Field(..., ge=1, le=50, description="Tokens to award (1-50)")
    action: str = Field("Activity", max_length=100, description="What earned the tokens")


class EarnTokensResponse(BaseModel):
    success: bool = True
    tokens_earned: int
    new_balance: int
    daily_earned: int
    daily_limit: int
    daily_remaining: int
    transaction: TokenTransaction


class TokenDataResponse(BaseModel):
    success: bool = True
    token_balance: int
    total_tokens_earned: int
    daily_tokens_earned: int
    credits_balance: int
    daily_limit: int
    daily_remaining: int
    transactions: list[TokenTransaction]
