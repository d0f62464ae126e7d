"""Wallet authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class NonceResponse(BaseModel):
    """Challenge handed to the client for signing."""

    nonce: str = Field(..., description="Opaque challenge; sign its UTF-8 bytes verbatim")


class WalletLoginRequest(BaseModel):
    """Signed challenge submitted by a wallet."""

    wallet_address: str = Field(
        ..., description="Hex-encoded Ed25519 public key (32 bytes)"
    )
    signature: str = Field(
        ..., description="Hex-encoded Ed25519 signature over the nonce"
    )


class LoginResponse(BaseModel):
    """Response returned after a successful wallet login."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(..., description="Token type (always 'bearer')")
    expires_at: datetime = Field(..., description="Expiry of the access token")
    wallet_address: str = Field(..., description="Authenticated wallet")
    user_id: str = Field(..., description="Account identifier for the wallet")
