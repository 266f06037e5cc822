"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """A registered wallet identity and its token counters."""

    id: str = Field(..., description="Opaque identifier assigned at registration")
    wallet_address: str = Field(..., description="Base58 Solana wallet address")
    username: str = Field(..., description="Unique handle (3-20 letters, digits or underscores)")
    email: str | None = None
    profile_picture: str | None = None
    token_balance: int = 0
    total_tokens_earned: int = 0
    daily_tokens_earned: int = 0
    last_token_earn_date: datetime | None = None
    credits_balance: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(extra="ignore")


class RegisterRequest(BaseModel):
    """Schema for registering a wallet under a username."""

    wallet_address: str = Field(..., description="Base58 Solana wallet address")
    username: str = Field(..., description="Requested username")
    email: str | None = Field(None, description="Optional contact email")
    profile_picture: str | None = Field(None, description="Optional avatar URL or data URI")


class RegisterResponse(BaseModel):
    """Registration response containing the new user and its session."""

    user: User
    token: str
    expires_at: datetime


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left untouched."""

    username: str | None = None
    email: str | None = None
    profile_picture: str | None = None


class ProfileResponse(BaseModel):
    user: User
