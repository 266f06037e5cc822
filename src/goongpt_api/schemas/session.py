"""Session record schema."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SessionRecord(BaseModel):
    """Opaque bearer session; the token is the lookup key."""

    id: str
    user_id: str
    token: str
    expires_at: datetime
    created_at: datetime

    model_config = ConfigDict(extra="ignore")
