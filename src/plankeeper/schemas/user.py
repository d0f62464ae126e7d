"""User account schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CurrentUserResponse(BaseModel):
    """Account details for the authenticated wallet."""

    id: str = Field(..., description="Account identifier")
    wallet_address: str = Field(..., description="Wallet that owns the account")
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
