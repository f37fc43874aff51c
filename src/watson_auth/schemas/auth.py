"""Sign-in Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class NonceRequest(BaseModel):
    """Request for a sign-in challenge."""

    address: str = Field(..., description="0x-prefixed account address to sign in as")
    chain_id: int = Field(..., alias="chainId", description="Chain the wallet is connected to")
    origin: str = Field(..., description="Origin of the page requesting the challenge")

    model_config = ConfigDict(populate_by_name=True)


class NonceResponse(BaseModel):
    """Challenge the wallet must sign verbatim."""

    nonce: str = Field(..., description="One-time challenge token")
    message: str = Field(..., description="Exact text to sign")
    expires_at: datetime = Field(..., alias="expiresAt", description="Nonce expiry")

    model_config = ConfigDict(populate_by_name=True)


class VerifyRequest(BaseModel):
    """Signed challenge submitted to open a session."""

    message: str = Field(..., description="Challenge text exactly as signed")
    signature: str = Field(..., description="Hex-encoded signature over the message")


class MeResponse(BaseModel):
    """Identity bound to the current session."""

    address: str = Field(..., description="Lowercase account address")
