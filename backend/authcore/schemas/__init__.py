"""Pydantic schemas for service input and output"""

from authcore.schemas.account import (
    RegisterRequest,
    LoginRequest,
    ProfileUpdate,
    OAuthProfile,
    AccountResponse,
    AccountPage,
    AccountStats,
)
from authcore.schemas.base import parse_input
from authcore.schemas.token import TokenPair, AuthResult, SessionInfo

__all__ = [
    "RegisterRequest", "LoginRequest", "ProfileUpdate", "OAuthProfile",
    "AccountResponse", "AccountPage", "AccountStats",
    "TokenPair", "AuthResult", "SessionInfo", "parse_input",
]
