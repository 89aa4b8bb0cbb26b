"""Error taxonomy shared by the hasher, codec, store and services"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(str, Enum):
    """Machine-readable error kinds; callers branch on these, never on messages"""
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    WRONG_KIND = "wrong_kind"
    NOT_FOUND = "not_found"
    CONFIGURATION = "configuration"


# Token-specific kinds are only distinguished internally.
_PUBLIC_KIND = {
    ErrorKind.EXPIRED: ErrorKind.UNAUTHORIZED,
    ErrorKind.MALFORMED: ErrorKind.UNAUTHORIZED,
    ErrorKind.WRONG_KIND: ErrorKind.UNAUTHORIZED,
}


class AuthCoreException(Exception):
    """Base exception for all auth core errors"""

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def public_kind(self) -> ErrorKind:
        """Kind as exposed to a caller-facing layer"""
        return _PUBLIC_KIND.get(self.kind, self.kind)

    def to_dict(self) -> Dict[str, Any]:
        """Render a caller-safe error body"""
        return {
            "success": False,
            "error": self.message,
            "kind": self.public_kind.value,
            "details": self.details,
        }


# Input Errors
class InvalidInputError(AuthCoreException):
    """Missing or malformed caller input"""
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


# Authentication Errors
class UnauthorizedError(AuthCoreException):
    """Credential or token rejected"""
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(UnauthorizedError):
    """Unknown email or wrong password; wording never tells which"""
    def __init__(self):
        super().__init__("Invalid email or password")


class FederatedAccountError(UnauthorizedError):
    """Password login attempted on an account without a password"""
    def __init__(self):
        super().__init__("This account uses federated sign-in. Please sign in with your provider.")


class TokenExpiredError(UnauthorizedError):
    """Token is past its expiry"""
    kind = ErrorKind.EXPIRED

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)


class TokenMalformedError(UnauthorizedError):
    """Token signature or structure is invalid"""
    kind = ErrorKind.MALFORMED

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)


class WrongTokenKindError(UnauthorizedError):
    """Access token presented where a refresh token is required, or vice versa"""
    kind = ErrorKind.WRONG_KIND

    def __init__(self, expected: str):
        self.expected = expected
        super().__init__(f"Invalid token type: {expected} token required")


# State Errors
class ConflictError(AuthCoreException):
    """Uniqueness or state precondition violated"""
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=409, details=details)


class DuplicateEmailError(ConflictError):
    """Email already registered"""
    def __init__(self):
        super().__init__("User with this email already exists")


class AlreadyRevokedError(ConflictError):
    """Refresh token was already revoked"""
    def __init__(self):
        super().__init__("Token already revoked")


class ProviderConflictError(ConflictError):
    """Account is already bound to another federated identity"""
    def __init__(self, message: str = "Account is already linked to another federated identity"):
        super().__init__(message)


class PasswordRequiredError(ConflictError):
    """Operation would leave the account without any login method"""
    def __init__(self):
        super().__init__("Cannot unlink federated sign-in without setting a password first")


# Resource Errors
class NotFoundError(AuthCoreException):
    """Entity absent where the caller assumed it exists"""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404)


# System Errors
class ConfigurationError(AuthCoreException):
    """Missing or unsafe configuration; fatal at startup"""
    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str):
        super().__init__(message, status_code=500)
