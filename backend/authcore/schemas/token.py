"""Token and session schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from authcore.schemas.account import AccountResponse


class TokenPair(BaseModel):
    """Freshly minted access + refresh tokens.

    The refresh token is meant for a script-inaccessible side channel
    (e.g. an HttpOnly cookie), never a JSON body.
    """
    access_token: str
    refresh_token: str = Field(exclude=True)
    token_type: str = "bearer"
    expires_in: int
    refresh_expires_at: datetime


class AuthResult(BaseModel):
    """Account plus the session issued for it"""
    account: AccountResponse
    tokens: TokenPair


class SessionInfo(BaseModel):
    """A persisted refresh-token row, without the token value"""
    id: int
    created_at: Optional[datetime]
    expires_at: datetime
    revoked: bool
    revoked_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)
