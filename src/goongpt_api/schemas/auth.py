"""Authentication-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from goongpt_api.schemas.user import User


class ChallengeResponse(BaseModel):
    """Message a wallet must sign to authenticate."""

    wallet_address: str
    message: str = Field(..., description="Exact text to sign with the wallet")
    timestamp: int = Field(..., description="Issue time in epoch milliseconds")


class AuthRequest(BaseModel):
    """Wallet signature submitted to authenticate."""

    wallet_address: str = Field("", description="Base58 Solana wallet address")
    signed_message: str = Field("", description="Base64 detached Ed25519 signature")
    message: str = Field("", description="The challenge text that was signed")


class AuthResponse(BaseModel):
    """Outcome of a signature login.

    Unknown wallets receive `needs_registration` instead of a session.
    """

    authenticated: bool
    needs_registration: bool | None = None
    wallet_address: str | None = None
    user: User | None = None
    token: str | None = None
    expires_at: datetime | None = None


class SessionStatusResponse(BaseModel):
    authenticated: bool
    user: User | None = None
    expires_at: datetime | None = None


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"
