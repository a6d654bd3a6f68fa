from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SessionRecord(BaseModel):
    """Session metadata persisted in the key-value store.

    Timestamps are epoch milliseconds; field names match the stored JSON.
    """

    model_config = ConfigDict(populate_by_name=True)

    created_at: int = Field(..., alias="createdAt")
    expires_at: int = Field(..., alias="expiresAt")
    ip: str = "unknown"


class LoginRequest(BaseModel):
    password: str = Field("", description="Administrator password")


class LoginResponse(BaseModel):
    success: bool = True
    token: str = Field(..., description="Opaque session token; send it as X-Admin-Token")


class LogoutResponse(BaseModel):
    success: bool = True


class SessionStatusResponse(BaseModel):
    valid: bool
