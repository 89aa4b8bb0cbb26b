"""Database models"""

from authcore.models.account import Account, AuthOrigin
from authcore.models.security import RefreshToken

__all__ = ["Account", "AuthOrigin", "RefreshToken"]
